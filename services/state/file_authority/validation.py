"""Pydantic request-validation models for File Authority Service API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from packages.filevault_shared.ids import is_ulid_str

MAX_OWNER_ID_LENGTH = 255
MAX_DISPLAY_NAME_LENGTH = 255


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def normalize_display_name(value: str) -> str:
    """Reduce a client-supplied filename to a printable base name."""
    base = value.replace("\\", "/").rsplit("/", 1)[-1]
    printable = "".join(char for char in base if char.isprintable()).strip()
    if printable in {"", ".", ".."}:
        raise ValueError("display_name must name a file")
    if len(printable) > MAX_DISPLAY_NAME_LENGTH:
        raise ValueError(
            f"display_name must be at most {MAX_DISPLAY_NAME_LENGTH} characters"
        )
    return printable


class OwnerRequest(_ValidationModel):
    """Validated request shape for owner-scoped queries."""

    owner_id: str

    @field_validator("owner_id")
    @classmethod
    def _validate_owner_id(cls, value: str, info: ValidationInfo) -> str:
        """Require a non-empty printable owner identity."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError(f"{info.field_name} is required")
        if len(normalized) > MAX_OWNER_ID_LENGTH:
            raise ValueError(
                f"{info.field_name} must be at most {MAX_OWNER_ID_LENGTH} characters"
            )
        if not normalized.isprintable():
            raise ValueError(f"{info.field_name} must be printable")
        return normalized


class UploadFileRequest(OwnerRequest):
    """Validated upload request shape."""

    display_name: str

    @field_validator("display_name")
    @classmethod
    def _validate_display_name(cls, value: str) -> str:
        return normalize_display_name(value)


class FileRefRequest(OwnerRequest):
    """Validated request shape for operations keyed by file id."""

    file_id: str

    @field_validator("file_id")
    @classmethod
    def _validate_file_id(cls, value: str, info: ValidationInfo) -> str:
        """Require a canonical ULID string and normalize to uppercase."""
        normalized = value.strip().upper()
        if normalized == "":
            raise ValueError(f"{info.field_name} is required")
        if not is_ulid_str(normalized):
            raise ValueError(f"{info.field_name} must be a 26-character ULID")
        return normalized
