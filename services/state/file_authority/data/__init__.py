"""Data-layer exports for File Authority Service."""

from services.state.file_authority.data.repository import SqlFileRepository
from services.state.file_authority.data.runtime import (
    FileCatalogRuntime,
    file_catalog_schema,
)
from services.state.file_authority.data.schema import files, metadata

__all__ = [
    "FileCatalogRuntime",
    "SqlFileRepository",
    "file_catalog_schema",
    "files",
    "metadata",
]
