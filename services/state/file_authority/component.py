"""Component declaration for File Authority Service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.filevault_shared.config import FileVaultSettings
from packages.filevault_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_file_authority")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        module_roots=frozenset({ModuleRoot("services.state.file_authority")}),
        owns_resources=frozenset({ComponentId("substrate_filesystem")}),
    )
)


def build_component(
    *, settings: FileVaultSettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from services.state.file_authority.service import build_file_authority_service

    return build_file_authority_service(
        settings=settings,
        object_store=components["substrate_filesystem"],
        catalog=components["substrate_postgres"],
    )
