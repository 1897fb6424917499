"""
Image build models for the platform rollout orchestrator.
"""

from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime


class ServiceType:
    """Known image build categories."""
    INQUIRIES = "inquiries"
    CONTENT = "content"
    GATEWAY = "gateway"
    WEBSITE = "website"


@dataclass(frozen=True)
class ImageBuildTask:
    """A single image to build."""
    service_name: str
    service_type: str
    image_name: str
    # Lower numbers start first within a group
    priority: int = 1


@dataclass(frozen=True)
class ImageBuildGroup:
    """Images that may be built concurrently, up to `parallelism` at a time."""
    name: str
    tasks: List[ImageBuildTask]
    parallelism: int = 1

    def __post_init__(self):
        if self.parallelism < 1:
            raise ValueError(f"build group '{self.name}' parallelism must be at least 1")


@dataclass
class BuildResult:
    """Result of one image build task."""
    service_name: str
    image_name: str
    success: bool = False
    image_ref: Optional[str] = None

    # Timing
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "service_name": self.service_name,
            "image_name": self.image_name,
            "success": self.success,
            "image_ref": self.image_ref,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
        }


@dataclass
class BuildSummary:
    """Aggregate of a whole build workflow."""
    results: Dict[str, BuildResult] = field(default_factory=dict)
    total_duration_seconds: float = 0.0
    elapsed_seconds: float = 0.0

    @property
    def failed_services(self) -> List[str]:
        return sorted(name for name, result in self.results.items() if not result.success)

    @property
    def success(self) -> bool:
        return not self.failed_services

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "builds": len(self.results),
            "total_duration_seconds": self.total_duration_seconds,
            "elapsed_seconds": self.elapsed_seconds,
            "failed_services": self.failed_services,
            "results": {name: result.to_dict() for name, result in self.results.items()},
        }
