"""
Configuration management for the platform rollout orchestrator.
Handles all environment variables and settings.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class RolloutConfig:
    """Configuration for deployment coordination and rollout policy."""
    deployment_timeout_minutes: float = field(default_factory=lambda: float(os.getenv("ROLLOUT_DEPLOYMENT_TIMEOUT_MINUTES", "30")))
    stale_lock_minutes: float = field(default_factory=lambda: float(os.getenv("ROLLOUT_STALE_LOCK_MINUTES", "5")))
    webhook_url: str = field(default_factory=lambda: os.getenv("ROLLOUT_WEBHOOK_URL", ""))
    background_process_patterns: List[str] = field(
        default_factory=lambda: os.getenv("ROLLOUT_BACKGROUND_PROCESS_PATTERNS", "pulumi,pulumi-program").split(",")
    )
    state_backend_check_command: str = field(
        default_factory=lambda: os.getenv("ROLLOUT_STATE_BACKEND_CHECK", "pulumi stack ls --non-interactive")
    )


@dataclass
class ImageBuildConfig:
    """Configuration for container image builds."""
    container_cli: str = field(default_factory=lambda: os.getenv("ROLLOUT_CONTAINER_CLI", "docker"))
    registry_url: str = field(default_factory=lambda: os.getenv("ROLLOUT_IMAGE_REGISTRY", ""))
    image_tag: str = field(default_factory=lambda: os.getenv("ROLLOUT_IMAGE_TAG", "latest"))
    source_dir: Path = field(default_factory=lambda: Path(os.getenv("ROLLOUT_SOURCE_DIR", ".")))
    build_timeout_seconds: int = field(default_factory=lambda: int(os.getenv("ROLLOUT_BUILD_TIMEOUT", "900")))
    platform: Optional[str] = field(default_factory=lambda: os.getenv("ROLLOUT_IMAGE_PLATFORM"))


@dataclass
class Config:
    """Main configuration container."""
    rollout: RolloutConfig = field(default_factory=RolloutConfig)
    images: ImageBuildConfig = field(default_factory=ImageBuildConfig)

    environment: str = field(default_factory=lambda: os.getenv("ROLLOUT_ENVIRONMENT", "development"))
    verbose: bool = field(default_factory=lambda: _env_bool("VERBOSE", "false"))

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if self.rollout.deployment_timeout_minutes <= 0:
            issues.append("ROLLOUT_DEPLOYMENT_TIMEOUT_MINUTES must be positive")
        if self.rollout.stale_lock_minutes <= 0:
            issues.append("ROLLOUT_STALE_LOCK_MINUTES must be positive")
        if not self.images.container_cli:
            issues.append("ROLLOUT_CONTAINER_CLI is not set")

        return issues

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls()


# Global config instance
config = Config.from_env()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
