"""Canonical error types carried by envelopes.

The taxonomy is transport-agnostic: the HTTP layer maps categories to status
codes, in-process callers branch on ``category`` and ``code``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """High-level error categories shared across component boundaries."""

    UNSPECIFIED = "unspecified"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    POLICY = "policy"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error object used in envelope responses."""

    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)
