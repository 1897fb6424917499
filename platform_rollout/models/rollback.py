"""
Rollback result models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List


@dataclass
class RollbackStepResult:
    """Outcome of rolling back one component."""
    component: str
    success: bool
    duration_seconds: float = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
        }


@dataclass
class RollbackReport:
    """Result of a full reverse-order rollback traversal."""
    environment: str
    reason: str = ""
    steps: List[RollbackStepResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0

    @property
    def visited(self) -> List[str]:
        return [step.component for step in self.steps]

    @property
    def failures(self) -> List[RollbackStepResult]:
        return [step for step in self.steps if not step.success]

    @property
    def success(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "environment": self.environment,
            "reason": self.reason,
            "success": self.success,
            "steps": [step.to_dict() for step in self.steps],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }
