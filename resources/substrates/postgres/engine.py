"""SQLAlchemy engine construction for the catalog database."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.pool import NullPool

from packages.filevault_shared.config import PostgresSettings


def create_postgres_engine(config: PostgresSettings) -> Engine:
    """Construct a configured SQLAlchemy engine.

    PostgreSQL URLs get the psycopg pool and connection options. SQLite URLs
    (local development and tests) get a thread-shareable connection and
    foreign-key enforcement instead.
    """
    if config.url.startswith("sqlite"):
        engine = create_engine(config.url, connect_args=_connect_args(config))
        event.listen(engine, "connect", _sqlite_pragmas)
        return engine

    return create_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout_seconds,
        pool_pre_ping=config.pool_pre_ping,
        connect_args=_connect_args(config),
    )


def create_advisory_lock_engine(config: PostgresSettings) -> Engine:
    """Construct an unpooled engine for connections that hold advisory locks.

    A held lock pins its connection for the whole critical section, and the
    section queries the catalog through the pooled engine; lock connections
    therefore never come from that pool.
    """
    engine = create_engine(
        config.url, poolclass=NullPool, connect_args=_connect_args(config)
    )
    if config.url.startswith("sqlite"):
        event.listen(engine, "connect", _sqlite_pragmas)
    return engine


def _connect_args(config: PostgresSettings) -> dict[str, Any]:
    if config.url.startswith("sqlite"):
        return {
            "check_same_thread": False,
            "timeout": config.connect_timeout_seconds,
        }
    connect_args: dict[str, Any] = {
        "connect_timeout": int(config.connect_timeout_seconds),
        "sslmode": config.sslmode,
    }
    if config.statement_timeout_ms > 0:
        connect_args["options"] = f"-c statement_timeout={config.statement_timeout_ms}"
    return connect_args


def _sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    del connection_record
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()
