"""create file authority tables"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from services.state.file_authority.data.runtime import file_catalog_schema

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _schema() -> str | None:
    """Resolve the service schema; dialects without schemas get ``None``."""
    if op.get_context().dialect.name != "postgresql":
        return None
    return file_catalog_schema()


def upgrade() -> None:
    """Create the ``files`` catalog table and its indexes."""
    schema = _schema()

    op.create_table(
        "files",
        sa.Column("id", sa.LargeBinary(length=16), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("digest_hex", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "download_count", sa.BigInteger(), nullable=False, server_default="0"
        ),
        sa.CheckConstraint("length(id) = 16", name="ck_files_id_ulid"),
        sa.CheckConstraint("length(digest_hex) = 64", name="ck_files_digest_len"),
        sa.CheckConstraint("size_bytes >= 0", name="ck_files_size_nonnegative"),
        sa.CheckConstraint(
            "download_count >= 0", name="ck_files_downloads_nonnegative"
        ),
        schema=schema,
    )
    op.create_index("ix_files_digest_hex", "files", ["digest_hex"], schema=schema)
    op.create_index(
        "ix_files_owner_created", "files", ["owner_id", "created_at"], schema=schema
    )


def downgrade() -> None:
    """Drop the ``files`` catalog table."""
    schema = _schema()
    op.drop_index("ix_files_owner_created", table_name="files", schema=schema)
    op.drop_index("ix_files_digest_hex", table_name="files", schema=schema)
    op.drop_table("files", schema=schema)
