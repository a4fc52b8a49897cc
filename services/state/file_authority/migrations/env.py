"""Alembic environment for File Authority Service schema migrations."""

from __future__ import annotations

from alembic import context
from sqlalchemy import Connection, pool

from packages.filevault_shared.config import PostgresSettings, load_settings
from resources.substrates.postgres import create_postgres_engine
from services.state.file_authority.data.runtime import file_catalog_schema
from services.state.file_authority.data.schema import metadata

config = context.config
target_metadata = metadata


def _postgres_settings() -> PostgresSettings:
    """Prefer settings handed over by the migration runner."""
    provided = config.attributes.get("postgres_settings")
    if isinstance(provided, PostgresSettings):
        return provided
    return load_settings().postgres


def _version_table_schema(dialect_name: str) -> str | None:
    return file_catalog_schema() if dialect_name == "postgresql" else None


def run_migrations_offline() -> None:
    """Run migrations without a live DB connection."""
    postgres_settings = _postgres_settings()
    dialect_name = "postgresql" if postgres_settings.is_postgres else "sqlite"
    context.configure(
        url=postgres_settings.url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        version_table_schema=_version_table_schema(dialect_name),
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_schemas=True,
        version_table_schema=_version_table_schema(connection.dialect.name),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations using a live DB connection."""
    connection = config.attributes.get("connection")
    if isinstance(connection, Connection):
        _run_with_connection(connection)
        return

    engine = create_postgres_engine(_postgres_settings())
    try:
        with engine.connect() as connection:
            _run_with_connection(connection)
            connection.commit()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
