"""
Rollout status reporting.

Each phase change of a rollout becomes a `RolloutEvent`. Events are kept in
order on the reporter and, when a webhook is configured, POSTed as JSON.
A webhook that cannot be reached is logged and never stops the rollout.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from .logger import get_logger


class RolloutPhase(Enum):
    STARTED = "started"
    VALIDATING = "validating"
    BUILDING_IMAGES = "building_images"
    DEPLOYING = "deploying"
    HEALTH_CHECKING = "health_checking"
    ROLLING_BACK = "rolling_back"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (RolloutPhase.SUCCEEDED, RolloutPhase.FAILED, RolloutPhase.ROLLED_BACK)


@dataclass(frozen=True)
class RolloutEvent:
    """One phase change. Only the fields relevant to the phase are set."""
    deployment_id: str
    phase: RolloutPhase
    message: str
    environment: Optional[str] = None
    component: Optional[str] = None
    group: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    failed_steps: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)

    def fields(self) -> Dict[str, Any]:
        """The phase-specific fields that are set."""
        values = {
            "environment": self.environment,
            "component": self.component,
            "group": self.group,
            "reason": self.reason,
            "error": self.error,
        }
        set_fields = {key: value for key, value in values.items() if value is not None}
        if self.failed_steps:
            set_fields["failed_steps"] = list(self.failed_steps)
        return set_fields

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployment_id": self.deployment_id,
            "phase": self.phase.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            **self.fields(),
        }


class RolloutStatus:
    """
    Records the phases one rollout passes through.

    Usage:
        status = RolloutStatus("rollout-staging", webhook_url="https://hooks.example.org/rollout")
        await status.deploying("database")
        status.phase  # RolloutPhase.DEPLOYING
    """

    def __init__(self, deployment_id: str, webhook_url: str = None, webhook_timeout: float = 10.0):
        self.deployment_id = deployment_id
        self.webhook_url = webhook_url
        self.webhook_timeout = webhook_timeout
        self.events: List[RolloutEvent] = []
        self.logger = get_logger("RolloutStatus")

    @property
    def phase(self) -> Optional[RolloutPhase]:
        return self.events[-1].phase if self.events else None

    @property
    def finished(self) -> bool:
        return self.phase is not None and self.phase.is_terminal

    async def _record(self, phase: RolloutPhase, message: str, **fields: Any) -> RolloutEvent:
        event = RolloutEvent(self.deployment_id, phase, message, **fields)
        self.events.append(event)

        if event.error:
            self.logger.error(message, phase=phase.value, **event.fields())
        else:
            self.logger.info(message, phase=phase.value, **event.fields())

        if self.webhook_url:
            await self._post(event)
        return event

    async def _post(self, event: RolloutEvent) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.webhook_timeout) as client:
                response = await client.post(self.webhook_url, json=event.to_dict())
            if response.status_code >= 400:
                self.logger.warning("Status webhook rejected event", status_code=response.status_code)
        except httpx.HTTPError as e:
            self.logger.warning("Status webhook unreachable", url=self.webhook_url, error=str(e))

    async def started(self, environment: str) -> RolloutEvent:
        return await self._record(
            RolloutPhase.STARTED, f"Rollout to {environment} started", environment=environment
        )

    async def validating(self) -> RolloutEvent:
        return await self._record(RolloutPhase.VALIDATING, "Validating environment configuration")

    async def building_images(self, group: str) -> RolloutEvent:
        return await self._record(RolloutPhase.BUILDING_IMAGES, f"Building image group {group}", group=group)

    async def deploying(self, component: str) -> RolloutEvent:
        return await self._record(RolloutPhase.DEPLOYING, f"Deploying {component}", component=component)

    async def health_checking(self) -> RolloutEvent:
        return await self._record(RolloutPhase.HEALTH_CHECKING, "Assessing overall deployment health")

    async def succeeded(self) -> RolloutEvent:
        return await self._record(RolloutPhase.SUCCEEDED, "Rollout succeeded")

    async def failed(self, error: str) -> RolloutEvent:
        return await self._record(RolloutPhase.FAILED, "Rollout failed", error=error)

    async def rolling_back(self, reason: str) -> RolloutEvent:
        return await self._record(RolloutPhase.ROLLING_BACK, "Rolling back", reason=reason)

    async def rolled_back(self, failed_steps: Sequence[str]) -> RolloutEvent:
        message = "Rollback completed"
        if failed_steps:
            message = f"Rollback completed with {len(failed_steps)} failed steps"
        return await self._record(RolloutPhase.ROLLED_BACK, message, failed_steps=tuple(failed_steps))
