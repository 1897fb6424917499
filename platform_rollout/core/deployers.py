"""
Deployer contract and registry.

A deployer converges one component for one environment and returns that
component's outputs bundle. Deployers own their own idempotency.
"""

from typing import Dict, Iterator, Mapping, Optional, Protocol, runtime_checkable

from .errors import ConfigurationError
from ..models.deployment import Component, Environment
from ..models.outputs import ComponentOutputs


@runtime_checkable
class ComponentDeployer(Protocol):
    """Provisions and tears down one platform component."""

    async def deploy(self, environment: Environment) -> ComponentOutputs:
        ...

    async def rollback(self, environment: Environment, outputs: Optional[ComponentOutputs]) -> None:
        ...


class DeployerRegistry(Mapping[Component, ComponentDeployer]):
    """
    Deployers for the full component set.

    Construction fails if any component has no deployer, so a missing
    deployer is caught before a rollout starts rather than half-way through.
    """

    def __init__(self, deployers: Mapping[Component | str, ComponentDeployer]):
        resolved: Dict[Component, ComponentDeployer] = {}
        for key, deployer in deployers.items():
            try:
                component = Component(key.value if isinstance(key, Component) else key)
            except ValueError:
                raise ConfigurationError(f"unknown component: {key!r}") from None
            resolved[component] = deployer

        missing = [c.value for c in Component.rollout_order() if c not in resolved]
        if missing:
            raise ConfigurationError(f"no deployer registered for: {', '.join(missing)}")

        self._deployers = resolved

    def __getitem__(self, component: Component) -> ComponentDeployer:
        return self._deployers[component]

    def __iter__(self) -> Iterator[Component]:
        return iter(Component.rollout_order())

    def __len__(self) -> int:
        return len(self._deployers)
