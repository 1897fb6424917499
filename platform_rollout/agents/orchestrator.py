"""
Deployment Orchestrator - Master agent that drives a platform rollout.

Pipeline:
1. Load and validate environment configuration
2. Deploy components in dependency order, health-checking each one
3. Verify every component produced outputs
4. Assess overall health and roll back when policy demands it

Image building is a separate phase (`build_required_images`) and is never
started implicitly by `deploy_infrastructure`.
"""

from datetime import timedelta
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from .base_agent import BaseAgent
from .build_workflow import ImageBuildWorkflow
from .rollback_agent import RollbackAgent
from ..config import Config
from ..core.deployers import ComponentDeployer, DeployerRegistry
from ..core.deployment_coordinator import DeploymentCoordinator
from ..core.rollout_status import RolloutStatus
from ..core.environment_config import (
    EnvironmentConfiguration,
    load_environment_config,
    validate_configuration,
)
from ..core.errors import (
    ConfigurationError,
    DeployerError,
    DeploymentNotActiveError,
    HealthCheckFailure,
    ImageBuildFailure,
    IntegrationValidationError,
    RolledBackError,
    RolloutError,
)
from ..core.health_monitor import HealthMonitor
from ..core.image_builder import ImageBuilder
from ..core.logger import rollout_context
from ..models.build import BuildSummary, ImageBuildGroup
from ..models.deployment import Component, Environment
from ..models.health import ComponentHealth, DeploymentHealth, HealthStatus
from ..models.outputs import DeploymentOutputs
from ..models.rollback import RollbackReport

ConfigLoader = Callable[[Environment], EnvironmentConfiguration]
ConfigValidator = Callable[[EnvironmentConfiguration, Environment], None]

# Rollout phases; flattened they give Component.rollout_order()
DEPLOYMENT_PHASES: List[Tuple[str, List[Component]]] = [
    (
        "Deploying foundational infrastructure",
        [Component.DATABASE, Component.STORAGE, Component.SECRETS],
    ),
    (
        "Deploying monitoring and orchestration",
        [Component.OBSERVABILITY, Component.SERVICE_MESH],
    ),
    ("Deploying application services", [Component.APPLICATION_SERVICES]),
    ("Deploying frontend", [Component.WEBSITE]),
]


class DeploymentOrchestrator(BaseAgent):
    """
    Coordinates deployers, health checks and rollback for one environment.

    Usage:
        orchestrator = DeploymentOrchestrator("staging", deployers, image_builder=builder)
        await orchestrator.build_required_images()
        outputs = await orchestrator.run_deployment()
    """

    def __init__(
        self,
        environment: "str | Environment",
        deployers: "DeployerRegistry | Mapping[Component, ComponentDeployer]",
        image_builder: ImageBuilder = None,
        coordinator: DeploymentCoordinator = None,
        health_monitor: HealthMonitor = None,
        status: RolloutStatus = None,
        config_loader: ConfigLoader = None,
        config_validator: ConfigValidator = None,
        build_groups: List[ImageBuildGroup] = None,
        config: Config = None,
    ):
        super().__init__("Orchestrator", config)
        self.environment = Environment.parse(environment)
        self.bind_log_context(environment=self.environment.value)
        self.deployers = deployers if isinstance(deployers, DeployerRegistry) else DeployerRegistry(deployers)
        self.image_builder = image_builder
        self.coordinator = coordinator or DeploymentCoordinator()
        self.health_monitor = health_monitor or HealthMonitor(self.environment)
        self.status = status or RolloutStatus(
            deployment_id=f"rollout-{self.environment.value}",
            webhook_url=self.config.rollout.webhook_url or None,
        )
        self.config_loader = config_loader or load_environment_config
        self.config_validator = config_validator or validate_configuration
        self.build_groups = build_groups
        self.rollback_agent = RollbackAgent(self.deployers, self.config)

        self.environment_config: Optional[EnvironmentConfiguration] = None
        self.warnings: List[ComponentHealth] = []
        self.last_health: Optional[DeploymentHealth] = None
        self.last_rollback: Optional[RollbackReport] = None

    async def run(self, build_images: bool = False, timeout: timedelta = None) -> DeploymentOutputs:
        """
        Full rollout under the coordinator.

        Args:
            build_images: Build container images before deploying
            timeout: Deployment timeout (coordinator default if not given)
        """
        if build_images:
            await self.build_required_images()
        return await self.run_deployment(timeout)

    def check_settings(self) -> None:
        """
        Raises:
            ConfigurationError: Listing every issue `Config.validate()` reports.
        """
        issues = self.config.validate()
        if issues:
            raise ConfigurationError(f"invalid rollout settings: {'; '.join(issues)}")

    async def build_required_images(self) -> BuildSummary:
        """
        Build every container image the rollout needs.

        Raises:
            ImageBuildFailure: If any build group failed.
            ConfigurationError: If no image builder was supplied or the settings are invalid.
        """
        if self.image_builder is None:
            raise ConfigurationError("no image builder configured")
        self.check_settings()

        self.log_step("Building required container images")
        workflow = ImageBuildWorkflow(
            self.image_builder,
            groups=self.build_groups,
            status=self.status,
            config=self.config,
        )

        try:
            summary = await workflow.run()
        except ImageBuildFailure as e:
            await self.status.failed(str(e))
            raise ImageBuildFailure(f"optimized image building failed: {e}", e.failed_services) from e

        self.log_success(f"Built {len(summary.results)} images in {summary.elapsed_seconds:.1f}s")
        return summary

    async def run_deployment(self, timeout: timedelta = None) -> DeploymentOutputs:
        """
        Take the deployment slot, deploy, and always release the slot.

        Raises:
            ContentionError / StateLockedError: Before anything is deployed.
            ConfigurationError: Rollout settings are invalid. The slot is not taken.
            RolloutError: Whatever `deploy_infrastructure` raises.
        """
        self.check_settings()
        deployment = self.coordinator.start_deployment_with_recovery(self.environment, timeout)
        self.status.deployment_id = deployment.id

        with rollout_context(deployment.id, self.environment.value):
            await self.status.started(self.environment.value)
            try:
                return await self.deploy_infrastructure()
            finally:
                try:
                    self.coordinator.complete_deployment(deployment)
                except DeploymentNotActiveError:
                    # Expired and reclaimed by another caller while we were running
                    self.logger.warning(f"Deployment {deployment.id} was no longer active at completion")

    async def deploy_infrastructure(self) -> DeploymentOutputs:
        """
        Deploy every component in dependency order.

        Returns:
            DeploymentOutputs with an entry for every component.

        Raises:
            ConfigurationError: Configuration failed to load or validate. Nothing was deployed.
            DeployerError: A deployer failed. Later components were not attempted.
            HealthCheckFailure: A component's outputs were judged failed.
            IntegrationValidationError: A component produced no outputs.
            RolledBackError: Health policy rejected the run and it was rolled back.
        """
        self.warnings = []
        self.last_health = None
        self.last_rollback = None

        try:
            self.log_step(f"Starting infrastructure deployment for {self.environment.value}", 1)
            await self._load_configuration()

            outputs = DeploymentOutputs()
            deployed: Set[Component] = set()
            for step, (title, components) in enumerate(DEPLOYMENT_PHASES, start=2):
                self.log_step(title, step)
                for component in components:
                    await self._deploy_with_health_check(component, outputs, deployed)
                    deployed.add(component)

            self.validate_component_integration(outputs)

            health = await self.assess_overall_health(outputs)
            if self.health_monitor.should_rollback(health, self.environment):
                report = await self.perform_rollback(outputs, "; ".join(health.issues))
                raise RolledBackError(health, report)

        except RolledBackError:
            raise
        except RolloutError as e:
            self.log_error(f"Infrastructure deployment failed: {e}")
            await self.status.failed(str(e))
            raise

        if self.warnings:
            self.logger.warning(
                f"Deployment completed with {len(self.warnings)} warnings",
                components=[health.name for health in self.warnings],
            )
        await self.status.succeeded()
        self.log_success(f"Infrastructure deployment completed for {self.environment.value}")
        return outputs

    async def _load_configuration(self) -> EnvironmentConfiguration:
        await self.status.validating()

        try:
            environment_config = self.config_loader(self.environment)
            if self.environment.requires_strict_validation:
                self.config_validator(environment_config, self.environment)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"environment configuration validation failed: {e}") from e

        self.environment_config = environment_config
        return environment_config

    async def _deploy_with_health_check(
        self,
        component: Component,
        outputs: DeploymentOutputs,
        deployed: Set[Component],
    ) -> None:
        pending = [dep.value for dep in component.dependencies if dep not in deployed]
        if pending:
            raise DeployerError(component.value, f"dependencies not deployed: {', '.join(pending)}")

        await self.status.deploying(component.value)
        self.logger.info(f"Deploying {component.label}", component=component.value)

        try:
            result = await self.deployers[component].deploy(self.environment)
        except Exception as e:
            raise DeployerError(component.value, e) from e

        health = self.health_monitor.validate_component_health(component, result)

        if health.status in (HealthStatus.FAILED, HealthStatus.UNKNOWN):
            raise HealthCheckFailure(component.value, health)

        if health.status is HealthStatus.MISCONFIGURED:
            self.warnings.append(health)
            self.logger.warning(
                f"{component.label} health check warning: {'; '.join(health.errors)}",
                component=component.value,
            )

        outputs.record(component, result)
        self.log_success(f"{component.label} deployed")

    def validate_component_integration(self, outputs: DeploymentOutputs) -> None:
        """
        Raises:
            IntegrationValidationError: Listing every component without outputs.
        """
        missing = outputs.missing_components()
        if missing:
            raise IntegrationValidationError([component.value for component in missing])
        self.logger.info("Component integration validation passed")

    async def assess_overall_health(self, outputs: DeploymentOutputs) -> DeploymentHealth:
        """Fresh health verdicts for all components, aggregated."""
        await self.status.health_checking()

        component_healths = self.health_monitor.assess(outputs)
        for component in Component.rollout_order():
            for issue in self.health_monitor.check_dependency_health(component, component_healths):
                self.logger.debug(issue, component=component.value)

        self.last_health = self.health_monitor.get_overall_health(component_healths)
        return self.last_health

    async def perform_rollback(self, outputs: DeploymentOutputs, reason: str) -> RollbackReport:
        """Unwind every component. Step failures are reported, never raised."""
        self.logger.warning(f"Rollback triggered: {reason}", environment=self.environment.value)
        await self.status.rolling_back(reason)

        report = await self.rollback_agent.run(self.environment, outputs, reason=reason)
        self.last_rollback = report

        await self.status.rolled_back([step.component for step in report.failures])
        return report

    def get_deployment_health(self, outputs: Mapping[Component, object]) -> Dict[str, bool]:
        """Presence check per component; not a health assessment."""
        return {
            component.value: outputs.get(component) is not None
            for component in Component.rollout_order()
        }
