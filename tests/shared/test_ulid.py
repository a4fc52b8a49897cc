"""Tests for ULID generation and conversion helpers."""

from __future__ import annotations

import pytest

from packages.filevault_shared.ids import (
    generate_ulid_bytes,
    generate_ulid_str,
    is_ulid_str,
    ulid_bytes_to_str,
    ulid_str_to_bytes,
)


def test_generated_ulid_roundtrips_between_forms() -> None:
    raw = generate_ulid_bytes()

    text = ulid_bytes_to_str(raw)

    assert len(raw) == 16
    assert len(text) == 26
    assert ulid_str_to_bytes(text) == raw


def test_ulid_strings_sort_by_timestamp() -> None:
    earlier = generate_ulid_str(timestamp_ms=1_000)
    later = generate_ulid_str(timestamp_ms=2_000)

    assert earlier < later


def test_ulid_decoding_accepts_lowercase() -> None:
    text = generate_ulid_str()

    assert ulid_str_to_bytes(text.lower()) == ulid_str_to_bytes(text)


@pytest.mark.parametrize(
    "value",
    ["", "0" * 25, "0" * 27, "I" * 26, "8" + "0" * 25],
)
def test_invalid_ulid_strings_are_rejected(value: str) -> None:
    assert is_ulid_str(value) is False
    with pytest.raises(ValueError):
        ulid_str_to_bytes(value)


def test_timestamp_outside_48_bits_is_rejected() -> None:
    with pytest.raises(ValueError):
        generate_ulid_bytes(timestamp_ms=1 << 48)


def test_bytes_of_wrong_length_are_rejected() -> None:
    with pytest.raises(ValueError):
        ulid_bytes_to_str(b"\x00" * 15)
