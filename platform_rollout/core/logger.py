"""
Structured logging for the platform rollout orchestrator.

structlog carries the machine-readable record; rich prints the operator view.
Everything logged inside `rollout_context` is tagged with the deployment ID
and environment through structlog's context variables.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from rich.console import Console
from rich.theme import Theme

rollout_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "step": "bold magenta",
    "context": "dim",
})

console = Console(theme=rollout_theme)


def setup_logging(verbose: bool = False, json_output: bool = None) -> None:
    """
    Configure structlog.

    Args:
        verbose: Emit debug records and render them for a terminal
        json_output: Force JSON rendering (defaults to `not verbose`)
    """
    if json_output is None:
        json_output = not verbose

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context: Any) -> structlog.BoundLogger:
    """Logger for one subsystem, optionally pre-bound with context."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


@contextmanager
def rollout_context(deployment_id: str, environment: str) -> Iterator[None]:
    """Tag every record logged in this block (and tasks it spawns) with the deployment."""
    with structlog.contextvars.bound_contextvars(deployment_id=deployment_id, environment=environment):
        yield


class AgentLogger:
    """Rollout driver logger: a rich console line plus a structured record."""

    def __init__(self, agent_name: str, **context: Any):
        self.agent_name = agent_name
        self.context = context
        self.logger = get_logger(agent_name, **context)

    def bind(self, **context: Any) -> "AgentLogger":
        return AgentLogger(self.agent_name, **{**self.context, **context})

    def _prefix(self) -> str:
        if not self.context:
            return f"[{self.agent_name}]"
        tags = " ".join(f"{key}={value}" for key, value in self.context.items())
        return f"[{self.agent_name}] [context]{tags}[/context]"

    def step(self, message: str, step_num: int = None) -> None:
        """Log a pipeline step."""
        marker = f"[Step {step_num}]" if step_num else "[→]"
        console.print(f"[step]{marker}[/step] {self._prefix()} {message}")
        self.logger.info(message, step=step_num)

    def success(self, message: str) -> None:
        console.print(f"[success]✓[/success] {self._prefix()} {message}")
        self.logger.info(message, status="success")

    def warning(self, message: str, **kwargs: Any) -> None:
        console.print(f"[warning]⚠[/warning] {self._prefix()} {message}")
        self.logger.warning(message, **kwargs)

    def error(self, message: str, exc: Exception = None, **kwargs: Any) -> None:
        console.print(f"[error]✗[/error] {self._prefix()} {message}")
        self.logger.error(message, exc_info=exc, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        console.print(f"[info]ℹ[/info] {self._prefix()} {message}")
        self.logger.info(message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, **kwargs)
