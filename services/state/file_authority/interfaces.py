"""Transport-neutral protocol interfaces used by File Authority Service."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from services.state.file_authority.domain import FileRecord


class FileRepository(Protocol):
    """Protocol for catalog persistence of file records."""

    def insert_file(
        self,
        *,
        owner_id: str,
        display_name: str,
        content_type: str,
        size_bytes: int,
        digest_hex: str,
    ) -> FileRecord:
        """Insert one record with a fresh id and return it."""

    def get_file(self, *, file_id: str) -> FileRecord | None:
        """Read one record by id regardless of owner."""

    def list_files_by_owner(self, *, owner_id: str) -> list[FileRecord]:
        """Return one owner's records, newest first."""

    def count_by_digest(self, *, digest_hex: str) -> int:
        """Return how many records reference ``digest_hex``."""

    def delete_file(self, *, file_id: str, owner_id: str) -> bool:
        """Delete one owner-scoped record and return whether it existed."""

    def increment_download_count(self, *, file_id: str, owner_id: str) -> None:
        """Add one to the owner-scoped record's download counter."""

    def ping(self) -> bool:
        """Return whether the catalog answers a trivial query."""


class DigestLocks(Protocol):
    """Mutual exclusion keyed by content digest."""

    def hold(self, digest_hex: str) -> AbstractContextManager[None]:
        """Hold the lock for ``digest_hex`` for the duration of a block."""
