"""Shared catalog database substrate."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.postgres.advisory import PostgresAdvisoryLocks
from resources.substrates.postgres.config import PostgresSettings
from resources.substrates.postgres.engine import (
    create_advisory_lock_engine,
    create_postgres_engine,
)
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.session import create_session_factory


class PostgresHealthStatus(BaseModel):
    """Catalog database readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class SharedPostgresSubstrate:
    """One engine and session factory shared by every catalog user.

    Advisory locks get a separate unpooled engine so a held lock never
    occupies a slot the locked section needs for its own catalog queries.
    """

    def __init__(self, *, settings: PostgresSettings, engine: Engine | None = None) -> None:
        self._settings = settings
        self._engine = engine if engine is not None else create_postgres_engine(settings)
        self._session_factory = create_session_factory(self._engine)
        self._lock_engine: Engine | None = None
        self._advisory_locks: PostgresAdvisoryLocks | None = None

    @property
    def engine(self) -> Engine:
        """Return the underlying SQLAlchemy engine."""
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    def advisory_locks(self) -> PostgresAdvisoryLocks | None:
        """Return advisory locks when enabled and supported by the dialect."""
        if not self._settings.advisory_locks:
            return None
        if self._engine.dialect.name != "postgresql":
            return None
        if self._advisory_locks is None:
            self._lock_engine = create_advisory_lock_engine(self._settings)
            self._advisory_locks = PostgresAdvisoryLocks(engine=self._lock_engine)
        return self._advisory_locks

    def health(self) -> PostgresHealthStatus:
        """Return readiness from a bounded ping."""
        ready = ping(self._engine, timeout_seconds=self._settings.health_timeout_seconds)
        return PostgresHealthStatus(
            ready=ready,
            detail="ok" if ready else "catalog ping failed",
        )

    def dispose(self) -> None:
        """Close pooled connections."""
        self._engine.dispose()
        if self._lock_engine is not None:
            self._lock_engine.dispose()
