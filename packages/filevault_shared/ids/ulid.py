"""ULID conversion and generation helpers.

The canonical string form is 26 Crockford Base32 characters encoding exactly
128 bits, big-endian: 48 bits of millisecond timestamp then 80 random bits.
"""

from __future__ import annotations

import secrets
import time

_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_DECODE = {char: index for index, char in enumerate(_ALPHABET)}
_MAX_ULID = (1 << 128) - 1
_ULID_STR_LENGTH = 26


def ulid_str_to_bytes(value: str) -> bytes:
    """Decode a 26-char ULID string into its 16-byte big-endian form."""
    candidate = value.strip().upper()
    if len(candidate) != _ULID_STR_LENGTH:
        raise ValueError("ULID string must be exactly 26 characters")

    number = 0
    for char in candidate:
        if char not in _DECODE:
            raise ValueError(f"Invalid ULID character: {char!r}")
        number = (number << 5) | _DECODE[char]

    # 26 base32 chars carry 130 bits; only the low 128 are valid.
    if number > _MAX_ULID:
        raise ValueError("ULID value exceeds 128-bit range")
    return number.to_bytes(16, byteorder="big", signed=False)


def ulid_bytes_to_str(value: bytes) -> str:
    """Encode 16 ULID bytes as the canonical 26-char string."""
    if len(value) != 16:
        raise ValueError("ULID bytes must be exactly 16 bytes")

    number = int.from_bytes(value, byteorder="big", signed=False)
    chars: list[str] = []
    for _ in range(_ULID_STR_LENGTH):
        number, remainder = divmod(number, 32)
        chars.append(_ALPHABET[remainder])
    return "".join(reversed(chars))


def is_ulid_str(value: str) -> bool:
    """Return whether ``value`` decodes as a canonical ULID string."""
    try:
        ulid_str_to_bytes(value)
    except ValueError:
        return False
    return True


def generate_ulid_bytes(*, timestamp_ms: int | None = None) -> bytes:
    """Generate a new ULID as 16 big-endian bytes."""
    ts_ms = time.time_ns() // 1_000_000 if timestamp_ms is None else int(timestamp_ms)
    if ts_ms < 0 or ts_ms >= (1 << 48):
        raise ValueError("timestamp_ms out of ULID 48-bit range")

    entropy = int.from_bytes(secrets.token_bytes(10), byteorder="big", signed=False)
    return ((ts_ms << 80) | entropy).to_bytes(16, byteorder="big", signed=False)


def generate_ulid_str(*, timestamp_ms: int | None = None) -> str:
    """Generate a new ULID in canonical string form."""
    return ulid_bytes_to_str(generate_ulid_bytes(timestamp_ms=timestamp_ms))
