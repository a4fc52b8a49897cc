"""Validation helpers for filesystem substrate inputs."""

from __future__ import annotations

_HEX = frozenset("0123456789abcdef")
DIGEST_HEX_LENGTH = 64


def normalize_digest_hex(value: str, *, field_name: str = "digest_hex") -> str:
    """Validate and lowercase one 64-char sha256 digest hex string."""
    normalized = value.strip().lower()
    if len(normalized) != DIGEST_HEX_LENGTH:
        raise ValueError(f"{field_name} must contain exactly 64 hex characters")
    if any(ch not in _HEX for ch in normalized):
        raise ValueError(f"{field_name} must be hexadecimal")
    return normalized


def is_digest_hex(value: str) -> bool:
    """Return whether ``value`` is already a canonical lowercase digest."""
    return len(value) == DIGEST_HEX_LENGTH and all(ch in _HEX for ch in value)
