"""SQLAlchemy helpers for ULID-backed primary keys."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, LargeBinary

ULID_BYTES_LENGTH = 16


def ulid_primary_key_column(
    name: str = "id",
    *,
    length_constraint_name: str | None = None,
) -> Column[bytes]:
    """Return a standard ULID primary-key column definition.

    Stored as 16 raw bytes (``BYTEA`` on PostgreSQL, ``BLOB`` on SQLite) with a
    check constraint pinning the length.
    """
    constraint = CheckConstraint(
        f"length({name}) = {ULID_BYTES_LENGTH}",
        name=length_constraint_name or f"ck_{name}_ulid_16",
    )
    return Column(
        name,
        LargeBinary(ULID_BYTES_LENGTH),
        constraint,
        primary_key=True,
        nullable=False,
    )
