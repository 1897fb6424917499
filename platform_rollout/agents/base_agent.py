"""
Base class for rollout drivers.

Drivers share one logging shape (console marker plus structlog record) and
measure their work on the monotonic clock.
"""

import time
from abc import ABC, abstractmethod
from typing import Any

from ..core.logger import AgentLogger
from ..config import get_config, Config


class BaseAgent(ABC):
    """
    Abstract base for the orchestrator, build workflow and rollback driver.

    Subclasses implement `run`. Extra keyword arguments become log context
    carried on every record the driver emits.
    """

    def __init__(self, name: str, config: Config = None, **log_context: Any):
        self.name = name
        self.config = config or get_config()
        self.logger = AgentLogger(name, **log_context)

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Execute the driver's main task."""
        pass

    def bind_log_context(self, **context: Any) -> None:
        self.logger = self.logger.bind(**context)

    @staticmethod
    def clock() -> float:
        return time.monotonic()

    def elapsed_since(self, started: float) -> float:
        return self.clock() - started

    def log_step(self, message: str, step: int = None) -> None:
        self.logger.step(message, step)

    def log_success(self, message: str) -> None:
        self.logger.success(message)

    def log_error(self, message: str, exc: Exception = None) -> None:
        self.logger.error(message, exc)
