"""Tests for catalog database exception normalization."""

from __future__ import annotations

import sqlite3

from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from resources.substrates.postgres import is_database_error, normalize_postgres_error


def test_operational_errors_are_retryable_dependency_failures() -> None:
    """Connectivity failures map to a retryable unavailable error."""
    exc = OperationalError("SELECT 1", {}, Exception("connection refused"))

    error = normalize_postgres_error(exc)

    assert error.category.value == "dependency"
    assert error.code == "DEPENDENCY_UNAVAILABLE"
    assert error.retryable is True
    assert error.metadata["exception_type"] == "OperationalError"


def test_unique_violations_map_to_conflict() -> None:
    """Duplicate keys are conflicts, not dependency failures."""
    exc = IntegrityError(
        "INSERT", {}, Exception("UNIQUE constraint failed: files.id")
    )

    error = normalize_postgres_error(exc)

    assert error.category.value == "conflict"


def test_other_database_errors_are_non_retryable_dependency_failures() -> None:
    """Programming errors will not succeed on retry."""
    exc = ProgrammingError("SELECT nope", {}, Exception("syntax error"))

    error = normalize_postgres_error(exc)

    assert error.category.value == "dependency"
    assert error.code == "DEPENDENCY_FAILURE"
    assert error.retryable is False


def test_is_database_error_recognizes_driver_and_sqlalchemy_types() -> None:
    """Only exceptions from the database stack are recognized."""
    assert is_database_error(OperationalError("x", {}, Exception("y")))
    assert is_database_error(sqlite3.OperationalError("locked"))
    assert not is_database_error(ValueError("nope"))
