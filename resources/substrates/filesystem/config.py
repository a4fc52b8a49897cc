"""Pydantic settings for the filesystem substrate component."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.filevault_shared.config import (
    FileVaultSettings,
    resolve_component_settings,
)
from resources.substrates.filesystem.component import RESOURCE_COMPONENT_ID


class FilesystemSubstrateSettings(BaseModel):
    """Object store layout and durability settings.

    Objects live under ``<root_dir>/objects``. Staged uploads live under
    ``staging_dir`` when set (it may be another volume), otherwise under
    ``<root_dir>/staging``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: str = "./var/filevault"
    staging_dir: str | None = None
    temp_prefix: str = "upload"
    fsync_writes: bool = True
    chunk_size_bytes: int = Field(default=64 * 1024, gt=0)
    sniff_bytes: int = Field(default=512, ge=0)

    @field_validator("root_dir")
    @classmethod
    def _validate_root_dir(cls, value: str) -> str:
        """Require a non-empty root directory path."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("root_dir is required")
        return normalized

    @field_validator("staging_dir")
    @classmethod
    def _normalize_staging_dir(cls, value: str | None) -> str | None:
        """Treat a blank staging directory as unset."""
        if value is None or value.strip() == "":
            return None
        return value.strip()

    @field_validator("temp_prefix")
    @classmethod
    def _validate_temp_prefix(cls, value: str) -> str:
        """Require a filename-safe temporary prefix."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("temp_prefix is required")
        if "/" in normalized or "\\" in normalized or normalized.startswith("."):
            raise ValueError("temp_prefix must be a plain filename prefix")
        return normalized

    def root_path(self) -> Path:
        """Return the expanded root path."""
        return Path(self.root_dir).expanduser().resolve()

    def objects_path(self) -> Path:
        """Return the directory holding content-addressed objects."""
        return self.root_path() / "objects"

    def staging_path(self) -> Path:
        """Return the directory holding in-flight staged uploads."""
        if self.staging_dir is not None:
            return Path(self.staging_dir).expanduser().resolve()
        return self.root_path() / "staging"


def resolve_filesystem_substrate_settings(
    settings: FileVaultSettings,
) -> FilesystemSubstrateSettings:
    """Resolve filesystem substrate settings from ``substrate.filesystem``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=FilesystemSubstrateSettings,
    )
