"""Typed errors for shared HTTP server helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class HttpError(Exception):
    """Base error type for shared HTTP helper failures."""

    message: str

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message


@dataclass(eq=False)
class HttpServerError(HttpError):
    """Base error type for inbound request parsing/validation helpers."""


@dataclass(eq=False)
class MissingHeaderError(HttpServerError):
    """Required inbound HTTP header is missing or blank."""

    header_name: str
