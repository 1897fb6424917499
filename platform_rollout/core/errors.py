"""
Error taxonomy for platform rollouts.

Every failure a caller can observe is a RolloutError subclass, so callers can
separate "never started" (ContentionError, StateLockedError, ConfigurationError)
from "started and failed" (DeployerError, HealthCheckFailure, ...) and from
"started, failed and was unwound" (RolledBackError).
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.health import ComponentHealth, DeploymentHealth
    from ..models.rollback import RollbackReport


class RolloutError(Exception):
    """Base class for all rollout errors."""
    pass


class ContentionError(RolloutError):
    """Raised when a deployment is already in flight."""

    def __init__(self, environment: str):
        self.environment = environment
        super().__init__(f"deployment already in progress for environment: {environment}")


class StateLockedError(RolloutError):
    """Raised when the environment state lock is held."""

    def __init__(self, environment: str):
        self.environment = environment
        super().__init__(f"state locked for environment: {environment}")


class DeploymentNotActiveError(RolloutError):
    """Raised when completing a deployment the coordinator is not tracking."""

    def __init__(self, deployment_id: Optional[str] = None):
        self.deployment_id = deployment_id
        super().__init__("deployment not active")


class ConfigurationError(RolloutError):
    """Raised when environment configuration is missing or invalid."""
    pass


class DeployerError(RolloutError):
    """Raised when a component deployer fails."""

    def __init__(self, component: str, cause: object):
        self.component = component
        super().__init__(f"{component} deployment failed: {cause}")


class HealthCheckFailure(RolloutError):
    """Raised when a freshly deployed component reports a failed status."""

    def __init__(self, component: str, health: "ComponentHealth"):
        self.component = component
        self.health = health
        detail = "; ".join(health.errors) if health.errors else health.status.value
        super().__init__(f"{component} health check failed: {health.status.value} ({detail})")


class IntegrationValidationError(RolloutError):
    """Raised when component outputs are missing after rollout."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(
            f"component integration validation failed: missing component outputs: {', '.join(missing)}"
        )


class ImageNotFoundError(RolloutError):
    """Raised by deployers when a required container image has not been built."""

    def __init__(self, image_ref: str):
        self.image_ref = image_ref
        super().__init__(f"image not found: {image_ref}")


class ImageBuildFailure(RolloutError):
    """Raised when one or more image builds fail."""

    def __init__(self, message: str, failed_services: List[str]):
        self.failed_services = failed_services
        super().__init__(message)


class RolledBackError(RolloutError):
    """Raised after a policy-triggered rollback completed its traversal."""

    def __init__(self, health: "DeploymentHealth", report: "RollbackReport"):
        self.health = health
        self.report = report
        super().__init__("deployment rolled back due to health assessment failure")
