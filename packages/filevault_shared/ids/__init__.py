"""Shared ULID primitives for binary primary keys."""

from packages.filevault_shared.ids.sqlalchemy import (
    ULID_BYTES_LENGTH,
    ulid_primary_key_column,
)
from packages.filevault_shared.ids.ulid import (
    generate_ulid_bytes,
    generate_ulid_str,
    is_ulid_str,
    ulid_bytes_to_str,
    ulid_str_to_bytes,
)

__all__ = [
    "ULID_BYTES_LENGTH",
    "generate_ulid_bytes",
    "generate_ulid_str",
    "is_ulid_str",
    "ulid_bytes_to_str",
    "ulid_primary_key_column",
    "ulid_str_to_bytes",
]
