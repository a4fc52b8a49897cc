"""Domain contracts for File Authority Service payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FileRecord(BaseModel):
    """Catalog record for one uploaded file.

    ``id`` is the 26-character ULID string; ``digest_hex`` names the stored
    object, which may be shared with records of other owners.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    owner_id: str
    display_name: str
    content_type: str
    size_bytes: int
    digest_hex: str
    created_at: datetime
    download_count: int = 0


class FileDownload(BaseModel):
    """Open download: the record plus a readable stream the caller closes."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    record: FileRecord
    stream: Any
    size_bytes: int

    @property
    def display_name(self) -> str:
        return self.record.display_name

    @property
    def content_type(self) -> str:
        return self.record.content_type


class DeleteResult(BaseModel):
    """Outcome of deleting one file record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    file_id: str
    digest_hex: str
    object_reclaimed: bool


class ReclaimReport(BaseModel):
    """Summary of one orphan-reclaim pass."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dry_run: bool
    scanned_objects: int
    reclaimed_digests: list[str] = Field(default_factory=list)
    staged_files_removed: int = 0


class HealthStatus(BaseModel):
    """Service and owned dependency readiness status payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    catalog_ready: bool
    object_store_ready: bool
    detail: str
