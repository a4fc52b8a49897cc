"""Validation and normalization helpers for envelope metadata."""

from __future__ import annotations

from dataclasses import asdict, replace
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from packages.filevault_shared.errors import ErrorDetail, codes, validation_error

from .meta import EnvelopeKind, EnvelopeMeta

_REQUIRED_FIELDS = frozenset(
    {"envelope_id", "trace_id", "timestamp", "source", "principal"}
)


class _ValidatedEnvelopeMeta(BaseModel):
    """Validation-only envelope metadata model used by ``validate_meta``."""

    model_config = ConfigDict(extra="forbid")

    envelope_id: str = Field(min_length=1)
    trace_id: str = Field(min_length=1)
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str = Field(min_length=1)
    principal: str = Field(min_length=1)

    @model_validator(mode="after")
    def _enforce_kind(self) -> "_ValidatedEnvelopeMeta":
        """Reject unspecified envelope kinds."""
        if self.kind == EnvelopeKind.UNSPECIFIED:
            raise ValueError("metadata.kind must be specified")
        return self


def validate_meta(meta: EnvelopeMeta) -> list[ErrorDetail]:
    """Return validation errors for ``meta``; empty when it is well formed."""
    try:
        _ValidatedEnvelopeMeta.model_validate(asdict(meta))
    except ValidationError as exc:
        return [
            validation_error(
                _map_meta_validation_error(exc),
                code=codes.MISSING_REQUIRED_FIELD,
            )
        ]
    return []


def normalize_meta(meta: EnvelopeMeta) -> EnvelopeMeta:
    """Return ``meta`` with its timestamp normalized to UTC."""
    timestamp = meta.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    else:
        timestamp = timestamp.astimezone(UTC)
    if timestamp == meta.timestamp and timestamp.tzinfo is meta.timestamp.tzinfo:
        return meta
    return replace(meta, timestamp=timestamp)


def _map_meta_validation_error(error: ValidationError) -> str:
    """Map pydantic metadata validation failures to stable public messages."""
    first_error = error.errors()[0]
    location = first_error.get("loc", ())
    if not location:
        cause = first_error.get("ctx", {}).get("error")
        if cause is not None:
            return str(cause)
        return str(first_error.get("msg", "invalid metadata"))

    field_name = str(location[0])
    if field_name in _REQUIRED_FIELDS:
        return f"metadata.{field_name} is required"
    if field_name == "kind":
        return "metadata.kind must be specified"
    return str(first_error.get("msg", "invalid metadata"))
