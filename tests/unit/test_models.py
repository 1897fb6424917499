"""Unit tests for rollout data models."""

from dataclasses import FrozenInstanceError, replace
from datetime import datetime, timedelta

import pytest

from tests.conftest import complete_outputs


class TestComponent:
    """Tests for the component set."""

    def test_rollout_order(self):
        from platform_rollout.models.deployment import Component

        assert [c.value for c in Component.rollout_order()] == [
            "database", "storage", "secrets", "observability",
            "service-mesh", "application-services", "website",
        ]

    def test_rollback_order_is_exact_reverse(self):
        from platform_rollout.models.deployment import Component

        assert Component.rollback_order() == list(reversed(Component.rollout_order()))

    def test_dependencies_precede_dependents(self):
        from platform_rollout.models.deployment import Component

        order = Component.rollout_order()
        for component in order:
            for dependency in component.dependencies:
                assert order.index(dependency) < order.index(component)

    def test_lookup_by_slug(self):
        from platform_rollout.models.deployment import Component

        assert Component("service-mesh") is Component.SERVICE_MESH
        assert Component.WEBSITE.dependencies == (Component.APPLICATION_SERVICES,)
        assert Component.DATABASE.label == "Database"


class TestEnvironment:
    """Tests for environment parsing and policy flags."""

    def test_parse(self):
        from platform_rollout.models.deployment import Environment

        assert Environment.parse(" Production ") is Environment.PRODUCTION
        assert Environment.parse(Environment.STAGING) is Environment.STAGING

    @pytest.mark.parametrize("value", ["", None, "qa"])
    def test_parse_rejects_unknown(self, value):
        from platform_rollout.core.errors import ConfigurationError
        from platform_rollout.models.deployment import Environment

        with pytest.raises(ConfigurationError):
            Environment.parse(value)

    def test_policy_flags(self):
        from platform_rollout.models.deployment import Environment

        assert not Environment.DEVELOPMENT.requires_strict_validation
        assert Environment.STAGING.requires_strict_validation
        assert Environment.DEVELOPMENT.tolerates_partial_failure
        assert not Environment.PRODUCTION.tolerates_partial_failure


class TestDeployment:
    """Tests for the Deployment record."""

    def test_expiry(self):
        from platform_rollout.models.deployment import Deployment, Environment

        started = datetime(2026, 3, 1, 12, 0, 0)
        deployment = Deployment(
            id="deploy-1",
            environment=Environment.STAGING,
            started_at=started,
            timeout=timedelta(minutes=30),
            process_id="proc-1-1",
            started_monotonic=500.0,
        )

        assert not deployment.is_expired(now=2300.0)
        assert deployment.is_expired(now=2301.0)
        assert deployment.elapsed(now=560.0) == timedelta(minutes=1)
        assert deployment.to_dict()["timeout_seconds"] == 1800
        assert deployment.to_dict()["deadline"] == "2026-03-01T12:30:00"

    def test_immutable(self):
        from platform_rollout.models.deployment import Deployment, Environment

        deployment = Deployment("deploy-1", Environment.STAGING, datetime.now(), timedelta(1), "proc-1-1")

        with pytest.raises(FrozenInstanceError):
            deployment.timeout = timedelta(0)


class TestOutputs:
    """Tests for typed output bundles."""

    def test_missing_fields(self):
        from platform_rollout.models.deployment import Component

        outputs = replace(
            complete_outputs()[Component.APPLICATION_SERVICES],
            public_gateway_url="",
            admin_gateway_url="\t",
        )

        assert outputs.missing_fields() == ["Public gateway URL", "Admin gateway URL"]
        assert not outputs.is_complete()

    def test_outputs_are_frozen(self):
        from platform_rollout.models.deployment import Component

        outputs = complete_outputs()[Component.WEBSITE]

        with pytest.raises(FrozenInstanceError):
            outputs.server_url = ""

    def test_to_dict_merges_extras(self):
        from platform_rollout.models.outputs import StorageOutputs

        outputs = StorageOutputs(connection_string="s3://assets", extras={"region": "eu-west-1"})

        assert outputs.to_dict() == {
            "connection_string": "s3://assets",
            "bucket_name": "",
            "region": "eu-west-1",
        }

    def test_deployment_outputs(self):
        from platform_rollout.models.deployment import Component
        from platform_rollout.models.outputs import DeploymentOutputs

        outputs = DeploymentOutputs({Component.DATABASE: complete_outputs()[Component.DATABASE]})

        assert list(outputs) == Component.rollout_order()
        assert outputs[Component.STORAGE] is None
        assert Component.DATABASE not in outputs.missing_components()
        assert len(outputs.missing_components()) == 6
        assert outputs.to_dict()["website"] is None

    def test_deployment_outputs_rejects_wrong_type(self):
        from platform_rollout.models.deployment import Component
        from platform_rollout.models.outputs import DeploymentOutputs

        outputs = DeploymentOutputs()

        with pytest.raises(TypeError):
            outputs.record(Component.DATABASE, complete_outputs()[Component.WEBSITE])


class TestReports:
    """Tests for health, build and rollback aggregates."""

    def test_component_health_mark(self):
        from platform_rollout.models.health import ComponentHealth, HealthStatus

        health = ComponentHealth(name="storage")
        health.mark(HealthStatus.MISCONFIGURED, "Storage connection string is empty")

        assert health.healthy is False
        assert health.to_dict()["status"] == "misconfigured"

    def test_build_summary(self):
        from platform_rollout.models.build import BuildResult, BuildSummary

        summary = BuildSummary(results={
            "news": BuildResult("news", "backend/news:latest", success=False, error="boom"),
            "media": BuildResult("media", "backend/media:latest", success=True),
        })

        assert summary.failed_services == ["news"]
        assert summary.success is False
        assert summary.to_dict()["builds"] == 2

    def test_rollback_report(self):
        from platform_rollout.models.rollback import RollbackReport, RollbackStepResult

        report = RollbackReport(environment="production", steps=[
            RollbackStepResult("website", success=True),
            RollbackStepResult("application-services", success=False, error="timeout"),
        ])

        assert report.visited == ["website", "application-services"]
        assert [s.component for s in report.failures] == ["application-services"]
        assert report.to_dict()["success"] is False
