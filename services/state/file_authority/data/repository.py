"""Authoritative catalog repository for File Authority Service state."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select, text, update

from packages.filevault_shared.ids import (
    generate_ulid_bytes,
    ulid_bytes_to_str,
    ulid_str_to_bytes,
)
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from services.state.file_authority.domain import FileRecord
from services.state.file_authority.interfaces import FileRepository

from .schema import files


class SqlFileRepository(FileRepository):
    """SQL repository over the service-owned ``files`` table.

    Every method runs in its own committed transaction.
    """

    def __init__(self, sessions: ServiceSchemaSessionProvider) -> None:
        self._sessions = sessions

    def insert_file(
        self,
        *,
        owner_id: str,
        display_name: str,
        content_type: str,
        size_bytes: int,
        digest_hex: str,
    ) -> FileRecord:
        """Insert one record with a fresh ULID and return it."""
        values = {
            "id": generate_ulid_bytes(),
            "owner_id": owner_id,
            "display_name": display_name,
            "content_type": content_type,
            "size_bytes": size_bytes,
            "digest_hex": digest_hex,
            "created_at": datetime.now(UTC),
            "download_count": 0,
        }
        with self._sessions.session() as session:
            session.execute(files.insert().values(**values))
        return _to_record(values)

    def get_file(self, *, file_id: str) -> FileRecord | None:
        """Read one record by id."""
        with self._sessions.session() as session:
            row = (
                session.execute(
                    select(files).where(files.c.id == ulid_str_to_bytes(file_id))
                )
                .mappings()
                .one_or_none()
            )
            return None if row is None else _to_record(row)

    def list_files_by_owner(self, *, owner_id: str) -> list[FileRecord]:
        """Return one owner's records ordered newest first."""
        with self._sessions.session() as session:
            rows = (
                session.execute(
                    select(files)
                    .where(files.c.owner_id == owner_id)
                    .order_by(files.c.created_at.desc(), files.c.id.desc())
                )
                .mappings()
                .all()
            )
            return [_to_record(row) for row in rows]

    def count_by_digest(self, *, digest_hex: str) -> int:
        """Count records referencing one digest."""
        with self._sessions.session() as session:
            count = session.execute(
                select(func.count())
                .select_from(files)
                .where(files.c.digest_hex == digest_hex)
            ).scalar_one()
            return int(count)

    def delete_file(self, *, file_id: str, owner_id: str) -> bool:
        """Delete one owner-scoped record and return whether it existed."""
        with self._sessions.session() as session:
            result = session.execute(
                delete(files).where(
                    files.c.id == ulid_str_to_bytes(file_id),
                    files.c.owner_id == owner_id,
                )
            )
            return int(result.rowcount or 0) > 0

    def increment_download_count(self, *, file_id: str, owner_id: str) -> None:
        """Increment the owner-scoped record's download counter."""
        with self._sessions.session() as session:
            session.execute(
                update(files)
                .where(
                    files.c.id == ulid_str_to_bytes(file_id),
                    files.c.owner_id == owner_id,
                )
                .values(download_count=files.c.download_count + 1)
            )

    def ping(self) -> bool:
        """Run a trivial query through a schema-pinned session."""
        with self._sessions.session() as session:
            session.execute(text("SELECT 1"))
        return True


def _to_record(row: Any) -> FileRecord:
    """Map one SQL row to a strict domain record."""
    return FileRecord(
        id=ulid_bytes_to_str(bytes(row["id"])),
        owner_id=str(row["owner_id"]),
        display_name=str(row["display_name"]),
        content_type=str(row["content_type"]),
        size_bytes=int(row["size_bytes"]),
        digest_hex=str(row["digest_hex"]),
        created_at=_row_dt(row, "created_at"),
        download_count=int(row["download_count"]),
    )


def _row_dt(row: Any, column: str) -> datetime:
    """Read and normalize one timezone-aware datetime field from SQL row."""
    value = row[column]
    if not isinstance(value, datetime):
        raise ValueError(f"expected datetime column for {column}")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
