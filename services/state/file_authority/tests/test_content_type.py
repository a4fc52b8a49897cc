"""Tests for upload content-type detection."""

from __future__ import annotations

import pytest

from services.state.file_authority.content_type import (
    OCTET_STREAM,
    PLAIN_TEXT,
    detect_content_type,
    sniff_content_type,
)


@pytest.mark.parametrize(
    ("head", "expected"),
    [
        (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png"),
        (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
        (b"GIF89a\x01\x00", "image/gif"),
        (b"%PDF-1.7\n%\xe2\xe3", "application/pdf"),
        (b"PK\x03\x04\x14\x00", "application/zip"),
        (b"\x1f\x8b\x08\x00", "application/x-gzip"),
        (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/wave"),
        (b"  \n<!doctype html><html>", "text/html; charset=utf-8"),
        (b"<p>hello</p>", "text/html; charset=utf-8"),
        (b'<?xml version="1.0"?><a/>', "text/xml; charset=utf-8"),
        (b"hello world", PLAIN_TEXT),
        (b"", PLAIN_TEXT),
        (b"\x00\x01\x02binary", OCTET_STREAM),
    ],
)
def test_sniff_signatures(head: bytes, expected: str) -> None:
    assert sniff_content_type(head) == expected


def test_html_tag_needs_terminator() -> None:
    """``<pre`` is not ``<p``; only a space or ``>`` ends a tag name."""
    assert sniff_content_type(b"<pre>text</pre>") == PLAIN_TEXT


def test_only_leading_512_bytes_are_considered() -> None:
    head = b"a" * 512 + b"\x00"

    assert sniff_content_type(head) == PLAIN_TEXT


def test_extension_refines_generic_text() -> None:
    assert detect_content_type(b"a,b\n1,2\n", "table.csv") == "text/csv"
    assert detect_content_type(b'{"a": 1}', "data.json") == "application/json"


def test_extension_refines_generic_binary() -> None:
    assert detect_content_type(b"\x00\x01\x02", "scan.pdf") == "application/pdf"


def test_extension_disagreeing_with_content_is_ignored() -> None:
    """A binary extension never relabels text, and vice versa."""
    assert detect_content_type(b"plain words", "photo.png") == PLAIN_TEXT
    assert detect_content_type(b"\x00\x01\x02", "notes.txt") == OCTET_STREAM


def test_signature_wins_over_extension() -> None:
    assert detect_content_type(b"%PDF-1.4", "document.txt") == "application/pdf"


def test_unknown_binary_uses_default() -> None:
    assert (
        detect_content_type(b"\x00\x01", "mystery", default="application/x-custom")
        == "application/x-custom"
    )
