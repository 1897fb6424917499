"""Data models for the platform rollout orchestrator."""

from .deployment import Component, Deployment, Environment
from .outputs import (
    ApplicationServicesOutputs,
    ComponentOutputs,
    DatabaseOutputs,
    DeploymentOutputs,
    ObservabilityOutputs,
    OUTPUT_TYPES,
    SecretsOutputs,
    ServiceMeshOutputs,
    StorageOutputs,
    WebsiteOutputs,
)
from .health import ComponentHealth, DeploymentHealth, HealthStatus
from .build import BuildResult, BuildSummary, ImageBuildGroup, ImageBuildTask, ServiceType
from .rollback import RollbackReport, RollbackStepResult

__all__ = [
    "Component",
    "Deployment",
    "Environment",
    "ComponentOutputs",
    "DatabaseOutputs",
    "StorageOutputs",
    "SecretsOutputs",
    "ObservabilityOutputs",
    "ServiceMeshOutputs",
    "ApplicationServicesOutputs",
    "WebsiteOutputs",
    "DeploymentOutputs",
    "OUTPUT_TYPES",
    "ComponentHealth",
    "DeploymentHealth",
    "HealthStatus",
    "BuildResult",
    "BuildSummary",
    "ImageBuildGroup",
    "ImageBuildTask",
    "ServiceType",
    "RollbackReport",
    "RollbackStepResult",
]
