"""Catalog database exception normalization helpers."""

from __future__ import annotations

from packages.filevault_shared.errors import (
    ErrorDetail,
    codes,
    conflict_error,
    dependency_error,
)


def is_database_error(exc: BaseException) -> bool:
    """Return whether ``exc`` originates from the SQLAlchemy/driver stack."""
    module = type(exc).__module__
    return module.startswith(("sqlalchemy", "psycopg", "sqlite3"))


def normalize_postgres_error(exc: Exception) -> ErrorDetail:
    """Map low-level database exceptions into shared error semantics."""
    exc_type_name = type(exc).__name__
    message = str(exc)
    metadata = {"exception_type": exc_type_name}

    if (
        "UniqueViolation" in exc_type_name
        or "duplicate key value" in message
        or "UNIQUE constraint failed" in message
    ):
        return conflict_error(
            "resource already exists",
            code=codes.CONFLICT,
            metadata=metadata,
        )

    if (
        "OperationalError" in exc_type_name
        or "TimeoutError" in exc_type_name
        or "timeout" in message.lower()
    ):
        return dependency_error(
            "catalog unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            retryable=True,
            metadata=metadata,
        )

    return dependency_error(
        "catalog request failed",
        code=codes.DEPENDENCY_FAILURE,
        retryable=False,
        metadata=metadata,
    )
