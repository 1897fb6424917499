"""Unit tests for DeploymentOrchestrator checks that run outside a rollout."""

from unittest.mock import MagicMock

import pytest

from platform_rollout.models.deployment import Component

from tests.conftest import complete_outputs


def _orchestrator(deployers, **kwargs):
    from platform_rollout.agents.orchestrator import DeploymentOrchestrator
    from platform_rollout.core.deployment_coordinator import DeploymentCoordinator

    kwargs.setdefault(
        "coordinator",
        DeploymentCoordinator(process_probe=lambda pid: True, process_killer=MagicMock(return_value=0)),
    )
    return DeploymentOrchestrator("staging", deployers, **kwargs)


class TestComponentIntegration:
    """Tests for the every-component-produced-outputs check."""

    def test_complete_outputs_pass(self, make_deployers):
        from platform_rollout.models.outputs import DeploymentOutputs

        orchestrator = _orchestrator(make_deployers())

        orchestrator.validate_component_integration(DeploymentOutputs(complete_outputs()))

    def test_missing_component_is_named(self, make_deployers):
        from platform_rollout.core.errors import IntegrationValidationError
        from platform_rollout.models.outputs import DeploymentOutputs

        bundles = complete_outputs()
        del bundles[Component.OBSERVABILITY]
        orchestrator = _orchestrator(make_deployers())

        with pytest.raises(IntegrationValidationError) as exc_info:
            orchestrator.validate_component_integration(DeploymentOutputs(bundles))

        assert exc_info.value.missing == ["observability"]
        assert "missing component outputs: observability" in str(exc_info.value)

    def test_every_missing_component_listed_in_order(self, make_deployers):
        from platform_rollout.core.errors import IntegrationValidationError
        from platform_rollout.models.outputs import DeploymentOutputs

        bundles = complete_outputs()
        del bundles[Component.WEBSITE]
        del bundles[Component.DATABASE]
        orchestrator = _orchestrator(make_deployers())

        with pytest.raises(IntegrationValidationError) as exc_info:
            orchestrator.validate_component_integration(DeploymentOutputs(bundles))

        assert exc_info.value.missing == ["database", "website"]


class TestSettingsCheck:
    """Tests for validating rollout settings before work starts."""

    def test_valid_settings_pass(self, make_deployers):
        from platform_rollout.config import Config, ImageBuildConfig, RolloutConfig

        config = Config(
            rollout=RolloutConfig(deployment_timeout_minutes=30, stale_lock_minutes=5),
            images=ImageBuildConfig(container_cli="docker"),
        )

        _orchestrator(make_deployers(), config=config).check_settings()

    def test_every_issue_reported(self, make_deployers):
        from platform_rollout.config import Config, ImageBuildConfig, RolloutConfig
        from platform_rollout.core.errors import ConfigurationError

        config = Config(
            rollout=RolloutConfig(deployment_timeout_minutes=0, stale_lock_minutes=5),
            images=ImageBuildConfig(container_cli=""),
        )
        orchestrator = _orchestrator(make_deployers(), config=config)

        with pytest.raises(ConfigurationError) as exc_info:
            orchestrator.check_settings()

        assert "ROLLOUT_DEPLOYMENT_TIMEOUT_MINUTES must be positive" in str(exc_info.value)
        assert "ROLLOUT_CONTAINER_CLI is not set" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_settings_stop_run_before_slot_taken(self, make_deployers, call_log):
        from platform_rollout.config import Config, RolloutConfig
        from platform_rollout.core.errors import ConfigurationError

        config = Config(rollout=RolloutConfig(deployment_timeout_minutes=30, stale_lock_minutes=0))
        orchestrator = _orchestrator(make_deployers(), config=config)

        with pytest.raises(ConfigurationError, match="ROLLOUT_STALE_LOCK_MINUTES must be positive"):
            await orchestrator.run_deployment()

        assert call_log == []
        assert orchestrator.coordinator.active_deployment is None
