"""
Component output bundles.

Each deployer returns the outputs type of its component. Bundles are frozen so
that health checks can inspect them but never change them. Required fields are
tagged with ``required_field`` and checked by ``missing_fields``.
"""

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Type

from .deployment import Component


def required_field(label: str, default: str = ""):
    """A string output that must be non-blank for the component to be usable."""
    return field(default=default, metadata={"required": True, "label": label})


@dataclass(frozen=True)
class ComponentOutputs:
    """Base class for per-component output bundles."""
    component: ClassVar[Component]

    extras: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def missing_fields(self) -> List[str]:
        """Labels of required fields that are empty or whitespace-only."""
        missing = []
        for f in fields(self):
            if not f.metadata.get("required"):
                continue
            value = getattr(self, f.name)
            if value is None or not str(value).strip():
                missing.append(f.metadata["label"])
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extras"}
        data.update(self.extras)
        return data


@dataclass(frozen=True)
class DatabaseOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.DATABASE

    connection_string: str = required_field("Database connection string")
    host: str = ""
    port: int = 5432
    database_name: str = ""


@dataclass(frozen=True)
class StorageOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.STORAGE

    connection_string: str = required_field("Storage connection string")
    bucket_name: str = ""


@dataclass(frozen=True)
class SecretsOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.SECRETS

    vault_address: str = required_field("Secrets store address")
    mount_path: str = "secret"


@dataclass(frozen=True)
class ObservabilityOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.OBSERVABILITY

    grafana_url: str = required_field("Grafana URL")
    metrics_endpoint: str = ""
    logs_endpoint: str = ""


@dataclass(frozen=True)
class ServiceMeshOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.SERVICE_MESH

    control_plane_url: str = required_field("Service mesh control plane URL")
    placement_address: str = ""


@dataclass(frozen=True)
class ApplicationServicesOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.APPLICATION_SERVICES

    public_gateway_url: str = required_field("Public gateway URL")
    admin_gateway_url: str = required_field("Admin gateway URL")
    service_urls: Mapping[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class WebsiteOutputs(ComponentOutputs):
    component: ClassVar[Component] = Component.WEBSITE

    server_url: str = required_field("Website server URL")


OUTPUT_TYPES: Dict[Component, Type[ComponentOutputs]] = {
    cls.component: cls
    for cls in (
        DatabaseOutputs,
        StorageOutputs,
        SecretsOutputs,
        ObservabilityOutputs,
        ServiceMeshOutputs,
        ApplicationServicesOutputs,
        WebsiteOutputs,
    )
}


class DeploymentOutputs(Mapping[Component, Optional[ComponentOutputs]]):
    """
    Outputs accumulated by one orchestration run, keyed by component in
    rollout order. Components that have not produced outputs map to None.
    """

    def __init__(self, values: Mapping[Component, Optional[ComponentOutputs]] = None):
        self._values: Dict[Component, Optional[ComponentOutputs]] = {
            component: None for component in Component.rollout_order()
        }
        for component, outputs in (values or {}).items():
            self.record(component, outputs)

    def record(self, component: Component, outputs: Optional[ComponentOutputs]) -> None:
        expected = OUTPUT_TYPES[component]
        if outputs is not None and not isinstance(outputs, expected):
            raise TypeError(
                f"{component.value} outputs must be {expected.__name__}, got {type(outputs).__name__}"
            )
        self._values[component] = outputs

    def missing_components(self) -> List[Component]:
        return [component for component, outputs in self._values.items() if outputs is None]

    def __getitem__(self, component: Component) -> Optional[ComponentOutputs]:
        return self._values[component]

    def __iter__(self) -> Iterator[Component]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            component.value: outputs.to_dict() if outputs is not None else None
            for component, outputs in self._values.items()
        }
