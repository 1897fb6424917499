"""
Health Monitor - component health verdicts and rollback policy.

Provides:
- Per-component validation of deployer outputs
- Aggregation into a deployment-wide assessment
- Advisory dependency diagnostics
- Environment-specific rollback decisions
"""

from typing import Dict, List, Mapping, Optional

from .logger import get_logger
from ..models.deployment import Component, Environment
from ..models.health import ComponentHealth, DeploymentHealth, HealthStatus
from ..models.outputs import ComponentOutputs, OUTPUT_TYPES

# Components whose loss forces a rollback outside development
CRITICAL_COMPONENTS = (
    Component.DATABASE,
    Component.SECRETS,
    Component.APPLICATION_SERVICES,
)

# Fraction of unhealthy components development tolerates
DEVELOPMENT_UNHEALTHY_THRESHOLD = 0.5


class HealthMonitor:
    """
    Translates component outputs into health verdicts.

    Never mutates the outputs it inspects, and never caches verdicts: every
    call recomputes from the outputs it is given.

    Usage:
        monitor = HealthMonitor(Environment.PRODUCTION)
        health = monitor.validate_component_health(Component.DATABASE, outputs)
        if health.status is HealthStatus.FAILED:
            ...
    """

    def __init__(self, environment: "str | Environment" = Environment.DEVELOPMENT):
        self.environment = Environment.parse(environment)
        self.logger = get_logger("HealthMonitor")

    def validate_component_health(
        self,
        component: "str | Component",
        outputs: Optional[ComponentOutputs],
    ) -> ComponentHealth:
        """
        Validate one component's outputs.

        Absent outputs give FAILED, a blank required field gives
        MISCONFIGURED, anything else HEALTHY. An unknown component name
        gives UNKNOWN.
        """
        try:
            component = component if isinstance(component, Component) else Component(component)
        except ValueError:
            health = ComponentHealth(name=str(component))
            health.mark(HealthStatus.UNKNOWN, f"Unknown component: {component}")
            self.logger.warning(f"{component} health check: {health.status.value}")
            return health

        health = ComponentHealth(
            name=component.value,
            dependencies=[dep.value for dep in component.dependencies],
        )

        if outputs is None:
            health.mark(HealthStatus.FAILED, f"{component.label} outputs are missing")
        elif not isinstance(outputs, OUTPUT_TYPES[component]):
            health.mark(
                HealthStatus.FAILED,
                f"{component.label} outputs have unexpected type {type(outputs).__name__}",
            )
        else:
            for label in outputs.missing_fields():
                health.mark(HealthStatus.MISCONFIGURED, f"{label} is empty")

        self.logger.info(f"{component.value} health check: {health.status.value}")
        return health

    def get_overall_health(self, component_healths: Mapping[str, ComponentHealth]) -> DeploymentHealth:
        """AND of all component verdicts, with one issue line per status and error."""
        deployment_health = DeploymentHealth(components=dict(component_healths))

        for health in component_healths.values():
            if health.healthy:
                continue
            deployment_health.overall_healthy = False
            deployment_health.issues.append(f"{health.name}: {health.status.value}")
            for error in health.errors:
                deployment_health.issues.append(f"{health.name} error: {error}")

        if deployment_health.overall_healthy:
            self.logger.info("All components are healthy")
        else:
            self.logger.warning("Deployment health issues detected", issues=deployment_health.issues)

        return deployment_health

    def check_dependency_health(
        self,
        component: "str | Component",
        all_health: Mapping[str, ComponentHealth],
    ) -> List[str]:
        """Advisory diagnostics about a component's declared dependencies."""
        name = component.value if isinstance(component, Component) else component
        component_health = all_health.get(name)
        if component_health is None:
            return [f"Component {name} not found"]

        issues = []
        for dep in component_health.dependencies:
            dep_health = all_health.get(dep)
            if dep_health is None:
                issues.append(f"Dependency {dep} not found for {name}")
            elif not dep_health.healthy:
                issues.append(f"Dependency {dep} is unhealthy for {name}: {dep_health.status.value}")

        return issues

    def should_rollback(
        self,
        health: DeploymentHealth,
        environment: "str | Environment" = None,
    ) -> bool:
        """
        Development rolls back only when more than half of the components are
        unhealthy. Staging and production roll back when any critical
        component is unhealthy, whatever the overall ratio.
        """
        environment = Environment.parse(environment) if environment is not None else self.environment

        if environment.tolerates_partial_failure:
            total = len(health.components)
            if total == 0:
                return False
            unhealthy = len(health.unhealthy_components())
            return unhealthy / total > DEVELOPMENT_UNHEALTHY_THRESHOLD

        for critical in CRITICAL_COMPONENTS:
            component_health = health.components.get(critical.value)
            if component_health is not None and not component_health.healthy:
                self.logger.error(
                    f"Critical component {critical.value} is unhealthy, rollback recommended",
                    environment=environment.value,
                )
                return True

        return False

    def assess(self, outputs: Mapping[Component, Optional[ComponentOutputs]]) -> Dict[str, ComponentHealth]:
        """Fresh verdicts for every component in rollout order."""
        return {
            component.value: self.validate_component_health(component, outputs.get(component))
            for component in Component.rollout_order()
        }
