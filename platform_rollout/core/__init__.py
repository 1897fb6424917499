"""Core module initialization."""

from .logger import get_logger, setup_logging, rollout_context, AgentLogger
from .errors import (
    RolloutError,
    ContentionError,
    StateLockedError,
    DeploymentNotActiveError,
    ConfigurationError,
    DeployerError,
    HealthCheckFailure,
    IntegrationValidationError,
    ImageNotFoundError,
    ImageBuildFailure,
    RolledBackError,
)
from .executor import CommandExecutor, CommandResult
from .rollout_status import RolloutStatus, RolloutPhase, RolloutEvent

# Modules that depend on ..models are imported directly:
#   core.deployment_coordinator, core.health_monitor, core.deployers,
#   core.environment_config, core.image_builder

__all__ = [
    "get_logger",
    "setup_logging",
    "rollout_context",
    "AgentLogger",
    # Errors
    "RolloutError",
    "ContentionError",
    "StateLockedError",
    "DeploymentNotActiveError",
    "ConfigurationError",
    "DeployerError",
    "HealthCheckFailure",
    "IntegrationValidationError",
    "ImageNotFoundError",
    "ImageBuildFailure",
    "RolledBackError",
    # Execution
    "CommandExecutor",
    "CommandResult",
    # Status
    "RolloutStatus",
    "RolloutPhase",
    "RolloutEvent",
]
