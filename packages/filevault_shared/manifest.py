"""Component manifests and the process-local registry.

Every substrate and service declares a manifest in its ``component.py``.
Bootstrap code reads the registry to find service module roots (for Alembic
migrations) and to check resource ownership.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from threading import RLock
from typing import Final, FrozenSet, Literal, NewType, Optional

ComponentId = NewType("ComponentId", str)
ModuleRoot = NewType("ModuleRoot", str)

ResourceKind = Literal["substrate"]

_COMPONENT_ID_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9_]{1,62}$")
_MODULE_ROOT_RE: Final[re.Pattern[str]] = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*$"
)


class ManifestError(ValueError):
    """Raised when manifest definitions or registration are invalid."""


@dataclass(frozen=True, slots=True)
class ComponentManifest:
    """Base manifest model for any component."""

    id: ComponentId
    module_roots: FrozenSet[ModuleRoot]

    def __post_init__(self) -> None:
        validate_component_id(self.id)
        if len(self.module_roots) == 0:
            raise ManifestError("module_roots must not be empty")
        for root in self.module_roots:
            validate_module_root(root)


@dataclass(frozen=True, slots=True)
class ResourceManifest(ComponentManifest):
    """Manifest for an infrastructure substrate."""

    kind: ResourceKind = "substrate"
    # None for shared infrastructure.
    owner_service_id: Optional[ComponentId] = None

    def __post_init__(self) -> None:
        super(ResourceManifest, self).__post_init__()
        if self.owner_service_id is not None:
            validate_component_id(self.owner_service_id)


@dataclass(frozen=True, slots=True)
class ServiceManifest(ComponentManifest):
    """Manifest for an authoritative service."""

    owns_resources: FrozenSet[ComponentId] = frozenset()

    @property
    def schema_name(self) -> str:
        """Return the database schema name owned by this service."""
        return str(self.id)


@dataclass(slots=True)
class ManifestRegistry:
    """In-memory registry for component manifests."""

    _components: dict[ComponentId, ComponentManifest] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def register_component(self, manifest: ComponentManifest) -> None:
        """Register one manifest; re-registering an identical one is a no-op."""
        with self._lock:
            existing = self._components.get(manifest.id)
            if existing is not None and existing != manifest:
                raise ManifestError(
                    f"duplicate component id with mismatched definition: {manifest.id}"
                )
            self._components[manifest.id] = manifest

    def get_component(self, component_id: ComponentId) -> ComponentManifest:
        """Return one registered manifest by id."""
        try:
            return self._components[component_id]
        except KeyError as exc:
            raise ManifestError(f"component not registered: {component_id}") from exc

    def list_resources(self) -> tuple[ResourceManifest, ...]:
        """Return registered resources sorted by id."""
        return tuple(
            sorted(
                (c for c in self._components.values() if isinstance(c, ResourceManifest)),
                key=lambda item: str(item.id),
            )
        )

    def list_services(self) -> tuple[ServiceManifest, ...]:
        """Return registered services sorted by id."""
        return tuple(
            sorted(
                (c for c in self._components.values() if isinstance(c, ServiceManifest)),
                key=lambda item: str(item.id),
            )
        )

    def assert_valid(self) -> None:
        """Check that every owned resource has exactly one registered owner."""
        with self._lock:
            owners: dict[ComponentId, ComponentId] = {}
            for service in self.list_services():
                for resource_id in service.owns_resources:
                    owner = owners.get(resource_id)
                    if owner is not None and owner != service.id:
                        raise ManifestError(
                            f"resource '{resource_id}' has multiple owners: "
                            f"{owner} and {service.id}"
                        )
                    owners[resource_id] = service.id

            service_ids = {service.id for service in self.list_services()}
            for resource in self.list_resources():
                if resource.owner_service_id is None:
                    continue
                if resource.owner_service_id not in service_ids:
                    raise ManifestError(
                        f"resource '{resource.id}' references unknown owner "
                        f"service '{resource.owner_service_id}'"
                    )


def validate_component_id(value: ComponentId) -> None:
    """Validate component-id format."""
    raw = str(value)
    if not _COMPONENT_ID_RE.fullmatch(raw):
        raise ManifestError(
            f"invalid component id '{raw}'; expected ^[a-z][a-z0-9_]{{1,62}}$"
        )


def validate_module_root(value: ModuleRoot) -> None:
    """Validate dotted Python module-root format."""
    if not _MODULE_ROOT_RE.fullmatch(str(value)):
        raise ManifestError(f"invalid module root '{value}'")


_DEFAULT_REGISTRY = ManifestRegistry()


def register_component(manifest: ComponentManifest) -> ComponentManifest:
    """Register a manifest in the process-local registry and return it."""
    _DEFAULT_REGISTRY.register_component(manifest)
    return manifest


def get_registry() -> ManifestRegistry:
    """Return the process-local manifest registry."""
    return _DEFAULT_REGISTRY
