"""Protocol and value types for content-addressed object storage."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator, Protocol

from pydantic import BaseModel, ConfigDict

from resources.substrates.filesystem.staging import ReadableStream, StagedUpload


class FilesystemHealthStatus(BaseModel):
    """Object store readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class PlacementOutcome(str, Enum):
    """Result of publishing a staged upload under its digest."""

    PLACED = "placed"
    DEDUPLICATED = "deduplicated"


@dataclass(frozen=True)
class ObjectHandle:
    """An open, read-only object stream; the caller closes ``stream``."""

    digest_hex: str
    stream: BinaryIO
    size_bytes: int


class ObjectStore(Protocol):
    """Digest-keyed, immutable object storage."""

    def health(self) -> FilesystemHealthStatus:
        """Report object store readiness."""

    def resolve_path(self, *, digest_hex: str) -> Path:
        """Return the deterministic path for one digest."""

    def stage(
        self, stream: ReadableStream, *, max_bytes: int | None = None
    ) -> StagedUpload:
        """Stage and hash one upload stream."""

    def place(self, *, digest_hex: str, staged_path: Path) -> PlacementOutcome:
        """Publish a staged file under ``digest_hex``; always consumes it."""

    def discard_staged(self, staged_path: Path) -> None:
        """Remove a staged file that will not be placed."""

    def remove(self, *, digest_hex: str) -> bool:
        """Remove one object; return whether it existed."""

    def open(self, *, digest_hex: str) -> ObjectHandle:
        """Open one object for reading."""

    def exists(self, *, digest_hex: str) -> bool:
        """Return whether an object is stored under ``digest_hex``."""

    def iter_digests(self) -> Iterator[str]:
        """Yield the digest of every stored object."""

    def sweep_staging(self, *, older_than_seconds: float) -> int:
        """Remove abandoned staged files; return how many were removed."""
