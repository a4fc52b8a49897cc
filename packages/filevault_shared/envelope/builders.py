"""Convenience constructors for typed envelope responses."""

from __future__ import annotations

from typing import Iterable, TypeVar

from packages.filevault_shared.errors import ErrorDetail

from .envelope import Envelope
from .meta import EnvelopeMeta
from .payload import Payload

T = TypeVar("T")


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    """Build a successful envelope with payload and no errors."""
    return Envelope[T](
        metadata=meta,
        payload=Payload[T](value=payload),
        errors=[],
    )


def failure(
    *,
    meta: EnvelopeMeta,
    errors: Iterable[ErrorDetail],
    payload: T | None = None,
) -> Envelope[T]:
    """Build a failed envelope with one or more errors."""
    wrapped = None if payload is None else Payload[T](value=payload)
    return Envelope[T](metadata=meta, payload=wrapped, errors=list(errors))


def with_error(*, envelope: Envelope[T], error: ErrorDetail) -> Envelope[T]:
    """Return a copy of ``envelope`` with one more error appended."""
    return Envelope[T](
        metadata=envelope.metadata,
        payload=envelope.payload,
        errors=[*envelope.errors, error],
    )
