"""Tests for shared exception normalization."""

from __future__ import annotations

import pytest

from packages.filevault_shared.errors import (
    ErrorCategory,
    codes,
    exception_to_error,
)


@pytest.mark.parametrize(
    ("exc", "category", "code", "retryable"),
    [
        (ValueError("bad"), ErrorCategory.VALIDATION, codes.INVALID_ARGUMENT, False),
        (KeyError("k"), ErrorCategory.NOT_FOUND, codes.RESOURCE_NOT_FOUND, False),
        (
            FileNotFoundError("gone"),
            ErrorCategory.NOT_FOUND,
            codes.RESOURCE_NOT_FOUND,
            False,
        ),
        (
            PermissionError("no"),
            ErrorCategory.POLICY,
            codes.PERMISSION_DENIED,
            False,
        ),
        (
            TimeoutError("slow"),
            ErrorCategory.DEPENDENCY,
            codes.DEPENDENCY_TIMEOUT,
            True,
        ),
        (
            ConnectionResetError("reset"),
            ErrorCategory.DEPENDENCY,
            codes.DEPENDENCY_UNAVAILABLE,
            True,
        ),
        (
            RuntimeError("boom"),
            ErrorCategory.INTERNAL,
            codes.UNEXPECTED_EXCEPTION,
            False,
        ),
    ],
)
def test_exception_to_error_maps_builtin_exceptions(
    exc: Exception, category: ErrorCategory, code: str, retryable: bool
) -> None:
    error = exception_to_error(exc)

    assert error.category == category
    assert error.code == code
    assert error.retryable is retryable
    assert error.metadata["exception_type"] == type(exc).__name__


def test_exception_to_error_supplies_default_message() -> None:
    assert exception_to_error(RuntimeError()).message == "unexpected exception"
