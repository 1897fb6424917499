"""
Rollback Agent - unwinds a rollout in reverse dependency order.

Responsible for:
- Visiting every component exactly once, website first, database last
- Continuing past failed steps
- Recording each step so partial failures stay observable
"""

from datetime import datetime
from typing import Mapping, Optional

from .base_agent import BaseAgent
from ..config import Config
from ..core.deployers import DeployerRegistry
from ..models.deployment import Component, Environment
from ..models.outputs import ComponentOutputs
from ..models.rollback import RollbackReport, RollbackStepResult


class RollbackAgent(BaseAgent):
    """
    Best-effort reverse-order rollback.

    Usage:
        agent = RollbackAgent(deployers)
        report = await agent.run(Environment.STAGING, outputs, reason="database unhealthy")

        for step in report.failures:
            print(f"{step.component}: {step.error}")
    """

    def __init__(self, deployers: DeployerRegistry, config: Config = None):
        super().__init__("RollbackAgent", config)
        self.deployers = deployers

    async def run(
        self,
        environment: Environment,
        outputs: Mapping[Component, Optional[ComponentOutputs]],
        reason: str = "",
    ) -> RollbackReport:
        """
        Roll back all components in reverse rollout order.

        Args:
            environment: Environment being unwound
            outputs: Outputs gathered by the run (None for components that produced none)
            reason: Why the rollback was triggered

        Returns:
            RollbackReport with one step per component. Never raises for step failures.
        """
        report = RollbackReport(environment=environment.value, reason=reason)
        self.log_step(f"Starting rollback in reverse dependency order: {reason or 'requested'}")

        for component in Component.rollback_order():
            report.steps.append(
                await self._rollback_component(environment, component, outputs.get(component))
            )

        report.finished_at = datetime.now()
        report.duration_seconds = (report.finished_at - report.started_at).total_seconds()

        if report.success:
            self.log_success(f"Rollback completed in {report.duration_seconds:.1f}s")
        else:
            failed = ", ".join(step.component for step in report.failures)
            self.logger.warning(f"Rollback completed with failures: {failed}")

        return report

    async def _rollback_component(
        self,
        environment: Environment,
        component: Component,
        outputs: Optional[ComponentOutputs],
    ) -> RollbackStepResult:
        self.logger.info(f"Rolling back {component.value} component")
        started = self.clock()

        try:
            await self.deployers[component].rollback(environment, outputs)
        except Exception as e:
            self.log_error(f"Failed to rollback {component.value}: {e}", e)
            return RollbackStepResult(
                component=component.value,
                success=False,
                duration_seconds=self.elapsed_since(started),
                error=str(e) or type(e).__name__,
            )

        self.logger.info(f"{component.value} component rollback completed")
        return RollbackStepResult(
            component=component.value,
            success=True,
            duration_seconds=self.elapsed_since(started),
        )
