"""Component declaration for the filesystem object store."""

from __future__ import annotations

from collections.abc import Mapping

from packages.filevault_shared.config import FileVaultSettings
from packages.filevault_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("substrate_filesystem")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        module_roots=frozenset({ModuleRoot("resources.substrates.filesystem")}),
        owner_service_id=ComponentId("service_file_authority"),
    )
)


def build_component(
    *, settings: FileVaultSettings, components: Mapping[str, object]
) -> object:
    """Build the object store from runtime settings."""
    del components
    from resources.substrates.filesystem.config import (
        resolve_filesystem_substrate_settings,
    )
    from resources.substrates.filesystem.filesystem_substrate import (
        LocalFilesystemObjectStore,
    )

    return LocalFilesystemObjectStore(
        settings=resolve_filesystem_substrate_settings(settings),
    )
