"""Component declaration for the shared catalog database substrate."""

from __future__ import annotations

from collections.abc import Mapping

from packages.filevault_shared.config import FileVaultSettings
from packages.filevault_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("substrate_postgres")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        module_roots=frozenset({ModuleRoot("resources.substrates.postgres")}),
        owner_service_id=None,
    )
)


def build_component(
    *, settings: FileVaultSettings, components: Mapping[str, object]
) -> object:
    """Build the shared substrate from runtime settings."""
    del components
    from resources.substrates.postgres.config import resolve_postgres_settings
    from resources.substrates.postgres.substrate import SharedPostgresSubstrate

    return SharedPostgresSubstrate(settings=resolve_postgres_settings(settings))
