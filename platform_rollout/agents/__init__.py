"""Agent implementations for platform rollouts."""

from .base_agent import BaseAgent
from .build_workflow import ImageBuildWorkflow, create_build_groups
from .rollback_agent import RollbackAgent
from .orchestrator import DeploymentOrchestrator, DEPLOYMENT_PHASES

__all__ = [
    "BaseAgent",
    "ImageBuildWorkflow",
    "create_build_groups",
    "RollbackAgent",
    "DeploymentOrchestrator",
    "DEPLOYMENT_PHASES",
]
