"""
Health models for component and deployment assessments.
"""

from enum import Enum
from typing import List, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime


class HealthStatus(Enum):
    """Health verdict of a single component."""
    HEALTHY = "healthy"
    MISCONFIGURED = "misconfigured"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    """Health of one component. Recomputed on every check."""
    name: str
    healthy: bool = True
    status: HealthStatus = HealthStatus.HEALTHY
    dependencies: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    last_checked: datetime = field(default_factory=datetime.now)

    def mark(self, status: HealthStatus, error: str) -> None:
        self.healthy = False
        self.status = status
        self.errors.append(error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "healthy": self.healthy,
            "status": self.status.value,
            "dependencies": self.dependencies,
            "errors": self.errors,
            "last_checked": self.last_checked.isoformat(),
        }


@dataclass
class DeploymentHealth:
    """Aggregate of component health values."""
    overall_healthy: bool = True
    components: Dict[str, ComponentHealth] = field(default_factory=dict)
    issues: List[str] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.now)

    def unhealthy_components(self) -> List[str]:
        return [name for name, health in self.components.items() if not health.healthy]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_healthy": self.overall_healthy,
            "components": {name: health.to_dict() for name, health in self.components.items()},
            "issues": self.issues,
            "last_updated": self.last_updated.isoformat(),
        }
