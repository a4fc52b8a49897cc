"""Exceptions raised by the filesystem object store."""

from __future__ import annotations


class ObjectStoreError(Exception):
    """Base class for object store failures."""


class SourceReadError(ObjectStoreError):
    """The upload source stream failed while being read."""


class StagingError(ObjectStoreError):
    """A staged upload could not be created, written, or flushed."""


class PayloadTooLargeError(ObjectStoreError):
    """The upload source exceeded the configured size limit."""

    def __init__(self, limit_bytes: int) -> None:
        super().__init__(f"upload exceeds {limit_bytes} bytes")
        self.limit_bytes = limit_bytes


class PlacementError(ObjectStoreError):
    """A staged upload could not be published under its digest path."""


class ObjectNotFoundError(ObjectStoreError):
    """No object is stored under the requested digest."""

    def __init__(self, digest_hex: str) -> None:
        super().__init__(f"object not found: {digest_hex}")
        self.digest_hex = digest_hex
