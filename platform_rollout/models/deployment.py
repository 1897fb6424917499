"""
Deployment models for the platform rollout orchestrator.
"""

import time
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..core.errors import ConfigurationError


class Environment(Enum):
    """Target environment of a rollout."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: "str | Environment") -> "Environment":
        """Resolve an environment name, rejecting unsupported values."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ConfigurationError(f"unsupported environment: {value!r}") from None

    @property
    def requires_strict_validation(self) -> bool:
        """Configuration must be fully validated before touching components."""
        return self is not Environment.DEVELOPMENT

    @property
    def tolerates_partial_failure(self) -> bool:
        return self is Environment.DEVELOPMENT


class Component(Enum):
    """
    Platform components in rollout order.

    Each member carries its display label and the components that must have
    deployed successfully before it.
    """
    DATABASE = ("database", "Database", ())
    STORAGE = ("storage", "Storage", ())
    SECRETS = ("secrets", "Secrets store", ())
    OBSERVABILITY = ("observability", "Observability", ())
    SERVICE_MESH = ("service-mesh", "Service mesh", ("database", "storage", "secrets"))
    APPLICATION_SERVICES = (
        "application-services",
        "Application services",
        ("database", "storage", "secrets", "service-mesh", "observability"),
    )
    WEBSITE = ("website", "Website", ("application-services",))

    def __new__(cls, slug: str, label: str, dependencies: Tuple[str, ...]):
        obj = object.__new__(cls)
        obj._value_ = slug
        obj.label = label
        obj._dependency_names = dependencies
        return obj

    @property
    def dependencies(self) -> Tuple["Component", ...]:
        return tuple(Component(name) for name in self._dependency_names)

    @classmethod
    def rollout_order(cls) -> List["Component"]:
        """Fixed deployment order."""
        return list(cls)

    @classmethod
    def rollback_order(cls) -> List["Component"]:
        """Exact reverse of the deployment order."""
        return list(reversed(cls.rollout_order()))


@dataclass(frozen=True)
class Deployment:
    """
    An in-flight deployment tracked by the coordinator. Immutable once created.

    `started_at` is wall-clock time for display; expiry is measured from
    `started_monotonic`.
    """
    id: str
    environment: Environment
    started_at: datetime
    timeout: timedelta
    process_id: str
    pid: Optional[int] = None
    started_monotonic: float = field(default_factory=time.monotonic)

    def elapsed(self, now: float = None) -> timedelta:
        """Time since start. `now` is a time.monotonic() reading."""
        now = time.monotonic() if now is None else now
        return timedelta(seconds=now - self.started_monotonic)

    def is_expired(self, now: float = None) -> bool:
        """True once more than `timeout` has elapsed since start."""
        return self.elapsed(now) > self.timeout

    @property
    def deadline(self) -> datetime:
        return self.started_at + self.timeout

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "environment": self.environment.value,
            "started_at": self.started_at.isoformat(),
            "timeout_seconds": self.timeout.total_seconds(),
            "deadline": self.deadline.isoformat(),
            "process_id": self.process_id,
            "pid": self.pid,
        }
