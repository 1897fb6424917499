"""
Environment configuration loading and validation.

Settings come from environment variables (a `.env` file is honoured through
python-dotenv). For a given environment, `ROLLOUT_<ENV>_<KEY>` overrides
`ROLLOUT_<KEY>`, so one shell can hold defaults plus per-environment values.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .logger import get_logger
from ..models.deployment import Component, Environment

load_dotenv()

logger = get_logger("EnvironmentConfig")

# Settings every non-development environment must provide
REQUIRED_SETTINGS = ("container_registry", "domain", "secrets_address")

OPTIONAL_SETTINGS = ("region", "database_size", "storage_replication", "log_retention_days")

# Output names published for downstream consumers, keyed to their component
OUTPUT_MAPPINGS: Dict[str, str] = {
    "environment": "",
    "database_connection_string": Component.DATABASE.value,
    "storage_connection_string": Component.STORAGE.value,
    "vault_address": Component.SECRETS.value,
    "grafana_url": Component.OBSERVABILITY.value,
    "service_mesh_control_plane_url": Component.SERVICE_MESH.value,
    "public_gateway_url": Component.APPLICATION_SERVICES.value,
    "admin_gateway_url": Component.APPLICATION_SERVICES.value,
    "website_url": Component.WEBSITE.value,
}

# Per-environment component defaults
COMPONENT_SETTINGS: Dict[Environment, Dict[str, Dict[str, Any]]] = {
    Environment.DEVELOPMENT: {
        "database": {"instances": 1, "backups": False},
        "application-services": {"replicas": 1},
        "website": {"replicas": 1},
    },
    Environment.STAGING: {
        "database": {"instances": 1, "backups": True},
        "application-services": {"replicas": 2},
        "website": {"replicas": 2},
    },
    Environment.PRODUCTION: {
        "database": {"instances": 2, "backups": True},
        "application-services": {"replicas": 3},
        "website": {"replicas": 3},
    },
}


@dataclass
class EnvironmentConfiguration:
    """Resolved configuration for one environment."""
    environment: str
    deployment_order: List[str] = field(default_factory=list)
    output_mappings: Dict[str, str] = field(default_factory=dict)
    component_settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    settings: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Structural validation, applied in every environment."""
        if not self.deployment_order:
            raise ConfigurationError("deployment order cannot be empty")
        if not self.output_mappings:
            raise ConfigurationError("output mappings cannot be empty")

        known = {component.value for component in Component}
        unknown = [name for name in self.deployment_order if name not in known]
        if unknown:
            raise ConfigurationError(f"unknown components in deployment order: {', '.join(unknown)}")

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.settings.get(key, default)

    def missing_settings(self, required=REQUIRED_SETTINGS) -> List[str]:
        return [key for key in required if not (self.settings.get(key) or "").strip()]


def _read_setting(key: str, environment: Environment, env: Mapping[str, str]) -> Optional[str]:
    scoped = f"ROLLOUT_{environment.value.upper()}_{key.upper()}"
    generic = f"ROLLOUT_{key.upper()}"
    return env.get(scoped) or env.get(generic)


def load_environment_config(
    environment: "str | Environment",
    env: Mapping[str, str] = None,
) -> EnvironmentConfiguration:
    """
    Load the configuration for `environment`.

    Raises:
        ConfigurationError: If the environment is unsupported or the
            resulting configuration is structurally invalid.
    """
    environment = Environment.parse(environment)
    env = os.environ if env is None else env

    settings = {}
    for key in REQUIRED_SETTINGS + OPTIONAL_SETTINGS:
        value = _read_setting(key, environment, env)
        if value is not None:
            settings[key] = value

    config = EnvironmentConfiguration(
        environment=environment.value,
        deployment_order=[component.value for component in Component.rollout_order()],
        output_mappings=dict(OUTPUT_MAPPINGS),
        component_settings={
            name: dict(values) for name, values in COMPONENT_SETTINGS[environment].items()
        },
        settings=settings,
    )
    config.validate()

    logger.debug("Loaded environment configuration", environment=environment.value, keys=sorted(settings))
    return config


def validate_configuration(config: EnvironmentConfiguration, environment: "str | Environment") -> None:
    """
    Strict validation for staging and production.

    Raises:
        ConfigurationError: Listing every missing required setting, or on an
            environment mismatch.
    """
    environment = Environment.parse(environment)

    if config.environment != environment.value:
        raise ConfigurationError(
            f"configuration is for {config.environment}, not {environment.value}"
        )

    config.validate()

    missing = config.missing_settings()
    if missing:
        raise ConfigurationError(
            f"missing required configuration for {environment.value}: {', '.join(missing)}"
        )
