"""Filesystem object store resource exports."""

from resources.substrates.filesystem.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.substrates.filesystem.config import (
    FilesystemSubstrateSettings,
    resolve_filesystem_substrate_settings,
)
from resources.substrates.filesystem.errors import (
    ObjectNotFoundError,
    ObjectStoreError,
    PayloadTooLargeError,
    PlacementError,
    SourceReadError,
    StagingError,
)
from resources.substrates.filesystem.filesystem_substrate import (
    LocalFilesystemObjectStore,
)
from resources.substrates.filesystem.staging import StagedUpload, stage_stream
from resources.substrates.filesystem.substrate import (
    FilesystemHealthStatus,
    ObjectHandle,
    ObjectStore,
    PlacementOutcome,
)

__all__ = [
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "FilesystemHealthStatus",
    "FilesystemSubstrateSettings",
    "LocalFilesystemObjectStore",
    "ObjectHandle",
    "ObjectNotFoundError",
    "ObjectStore",
    "ObjectStoreError",
    "PayloadTooLargeError",
    "PlacementError",
    "PlacementOutcome",
    "SourceReadError",
    "StagedUpload",
    "StagingError",
    "resolve_filesystem_substrate_settings",
    "stage_stream",
]
