"""Pydantic settings for File Authority Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.filevault_shared.config import (
    FileVaultSettings,
    resolve_component_settings,
)
from services.state.file_authority.component import SERVICE_COMPONENT_ID


class FileAuthoritySettings(BaseModel):
    """File Authority Service runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_upload_size_bytes: int = Field(default=1024 * 1024 * 1024, gt=0)
    count_retry_attempts: int = Field(default=1, ge=0, le=1)
    staging_max_age_seconds: float = Field(default=3600.0, gt=0)
    run_migrations_on_startup: bool = True
    default_content_type: str = "application/octet-stream"

    @field_validator("default_content_type")
    @classmethod
    def _validate_default_content_type(cls, value: str) -> str:
        """Require a ``type/subtype`` media type."""
        normalized = value.strip().lower()
        if "/" not in normalized:
            raise ValueError("default_content_type must look like 'type/subtype'")
        return normalized


def resolve_file_authority_settings(
    settings: FileVaultSettings,
) -> FileAuthoritySettings:
    """Resolve settings from ``components.service.file_authority``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=FileAuthoritySettings,
    )
