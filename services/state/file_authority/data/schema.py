"""SQLAlchemy table definitions owned by File Authority Service.

Tables are declared without a schema; on PostgreSQL the session provider pins
``search_path`` to the service schema.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
)

from packages.filevault_shared.ids import ulid_primary_key_column

metadata = MetaData()

files = Table(
    "files",
    metadata,
    ulid_primary_key_column("id", length_constraint_name="ck_files_id_ulid"),
    Column("owner_id", String(255), nullable=False),
    Column("display_name", String(255), nullable=False),
    Column("content_type", String(255), nullable=False),
    Column("size_bytes", BigInteger, nullable=False),
    Column("digest_hex", String(64), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("download_count", BigInteger, nullable=False, server_default="0"),
    CheckConstraint("length(digest_hex) = 64", name="ck_files_digest_len"),
    CheckConstraint("size_bytes >= 0", name="ck_files_size_nonnegative"),
    CheckConstraint("download_count >= 0", name="ck_files_downloads_nonnegative"),
    Index("ix_files_digest_hex", "digest_hex"),
    Index("ix_files_owner_created", "owner_id", "created_at"),
)
