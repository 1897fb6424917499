"""Shared fixtures for platform rollout tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from platform_rollout.models.deployment import Component, Environment
from platform_rollout.models.outputs import (
    ApplicationServicesOutputs,
    ComponentOutputs,
    DatabaseOutputs,
    ObservabilityOutputs,
    SecretsOutputs,
    ServiceMeshOutputs,
    StorageOutputs,
    WebsiteOutputs,
)


def complete_outputs() -> Dict[Component, ComponentOutputs]:
    """Outputs that pass every component health check."""
    return {
        Component.DATABASE: DatabaseOutputs(
            connection_string="postgres://app@db:5432/app", host="db", database_name="app"
        ),
        Component.STORAGE: StorageOutputs(connection_string="s3://platform-assets", bucket_name="platform-assets"),
        Component.SECRETS: SecretsOutputs(vault_address="https://vault.internal:8200"),
        Component.OBSERVABILITY: ObservabilityOutputs(grafana_url="https://grafana.internal"),
        Component.SERVICE_MESH: ServiceMeshOutputs(control_plane_url="https://mesh.internal:50005"),
        Component.APPLICATION_SERVICES: ApplicationServicesOutputs(
            public_gateway_url="https://api.example.org",
            admin_gateway_url="https://admin.example.org",
        ),
        Component.WEBSITE: WebsiteOutputs(server_url="https://www.example.org"),
    }


class RecordingDeployer:
    """Deployer double that appends to a shared call log."""

    def __init__(
        self,
        component: Component,
        calls: List[str],
        outputs: Optional[ComponentOutputs] = None,
        deploy_error: Exception = None,
        rollback_error: Exception = None,
    ):
        self.component = component
        self.calls = calls
        self.outputs = outputs
        self.deploy_error = deploy_error
        self.rollback_error = rollback_error

    async def deploy(self, environment: Environment) -> ComponentOutputs:
        self.calls.append(f"deploy:{self.component.value}")
        await asyncio.sleep(0)
        if self.deploy_error:
            raise self.deploy_error
        self.calls.append(f"deployed:{self.component.value}")
        return self.outputs

    async def rollback(self, environment: Environment, outputs: Optional[ComponentOutputs]) -> None:
        self.calls.append(f"rollback:{self.component.value}")
        if self.rollback_error:
            raise self.rollback_error


@pytest.fixture
def call_log() -> List[str]:
    return []


@pytest.fixture
def make_deployers(call_log):
    """
    Build a full deployer map. Keyword overrides per component:
    outputs=..., deploy_error=..., rollback_error=...
    """
    def factory(overrides: Dict[Component, dict] = None) -> Dict[Component, RecordingDeployer]:
        overrides = overrides or {}
        defaults = complete_outputs()
        deployers = {}
        for component in Component.rollout_order():
            options = {"outputs": defaults[component]}
            options.update(overrides.get(component, {}))
            deployers[component] = RecordingDeployer(component, call_log, **options)
        return deployers

    return factory
