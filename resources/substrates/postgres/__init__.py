"""Shared catalog database substrate primitives."""

from resources.substrates.postgres.advisory import (
    PostgresAdvisoryLocks,
    digest_lock_key,
)
from resources.substrates.postgres.bootstrap import bootstrap_service_schemas
from resources.substrates.postgres.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.substrates.postgres.config import (
    PostgresSettings,
    resolve_postgres_settings,
)
from resources.substrates.postgres.engine import (
    create_advisory_lock_engine,
    create_postgres_engine,
)
from resources.substrates.postgres.errors import (
    is_database_error,
    normalize_postgres_error,
)
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from resources.substrates.postgres.session import (
    create_session_factory,
    transactional_session,
)
from resources.substrates.postgres.substrate import (
    PostgresHealthStatus,
    SharedPostgresSubstrate,
)

__all__ = [
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "PostgresAdvisoryLocks",
    "PostgresHealthStatus",
    "PostgresSettings",
    "ServiceSchemaSessionProvider",
    "SharedPostgresSubstrate",
    "bootstrap_service_schemas",
    "create_advisory_lock_engine",
    "create_postgres_engine",
    "create_session_factory",
    "digest_lock_key",
    "is_database_error",
    "normalize_postgres_error",
    "ping",
    "resolve_postgres_settings",
    "transactional_session",
]
