"""File Authority-owned catalog runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.postgres import (
    PostgresAdvisoryLocks,
    ServiceSchemaSessionProvider,
    SharedPostgresSubstrate,
    ping,
)
from services.state.file_authority.component import MANIFEST


@dataclass(frozen=True)
class FileCatalogRuntime:
    """Concrete handle for schema-scoped catalog access."""

    engine: Engine
    session_factory: sessionmaker[Session]
    schema_sessions: ServiceSchemaSessionProvider
    advisory_locks: PostgresAdvisoryLocks | None = None

    @classmethod
    def from_substrate(cls, substrate: SharedPostgresSubstrate) -> "FileCatalogRuntime":
        """Build the catalog runtime over the shared database substrate."""
        return cls(
            engine=substrate.engine,
            session_factory=substrate.session_factory,
            schema_sessions=ServiceSchemaSessionProvider(
                session_factory=substrate.session_factory,
                schema=file_catalog_schema(),
            ),
            advisory_locks=substrate.advisory_locks(),
        )

    def is_healthy(self) -> bool:
        """Return ``True`` when the backing database is reachable."""
        return ping(self.engine)


def file_catalog_schema() -> str:
    """Resolve the service-owned schema name from component identity."""
    return MANIFEST.schema_name
