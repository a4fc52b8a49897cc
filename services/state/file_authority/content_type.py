"""Content-type detection from leading bytes and the display name.

Sniffing looks at no more than the first 512 bytes and recognizes a fixed set
of signatures; when the bytes are only recognized as generic text or generic
binary, the display name's extension may refine the answer, provided the
extension agrees on whether the content is textual.
"""

from __future__ import annotations

import mimetypes

SNIFF_LENGTH = 512

OCTET_STREAM = "application/octet-stream"
PLAIN_TEXT = "text/plain; charset=utf-8"

_WHITESPACE = b"\t\n\x0c\r "
_TAG_TERMINATORS = b" >"

_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

_EXACT_PREFIXES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", PLAIN_TEXT),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1aE\xdf\xa3", "video/webm"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)

# (container tag at 0, form type at 8) for RIFF/IFF containers.
_CONTAINERS: tuple[tuple[bytes, bytes, str], ...] = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"WAVE", "audio/wave"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"FORM", b"AIFF", "audio/aiff"),
)

_BINARY_BYTES = frozenset(
    [*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)]
)

_TEXTUAL_APPLICATION_TYPES = frozenset(
    {
        "application/javascript",
        "application/json",
        "application/xml",
        "application/x-sh",
        "application/x-python-code",
        "application/x-yaml",
        "application/yaml",
        "image/svg+xml",
    }
)


def sniff_content_type(head: bytes) -> str:
    """Return the media type recognized from up to 512 leading bytes."""
    data = head[:SNIFF_LENGTH]

    stripped = data.lstrip(_WHITESPACE)
    upper = stripped[:16].upper()
    for tag in _HTML_TAGS:
        if not upper.startswith(tag):
            continue
        following = stripped[len(tag) : len(tag) + 1]
        if following != b"" and following in _TAG_TERMINATORS:
            return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"

    for prefix, media_type in _EXACT_PREFIXES:
        if data.startswith(prefix):
            return media_type
    for container, form, media_type in _CONTAINERS:
        if data.startswith(container) and data[8 : 8 + len(form)] == form:
            return media_type
    if data[4:8] == b"ftyp":
        return "video/mp4"

    if any(byte in _BINARY_BYTES for byte in data):
        return OCTET_STREAM
    return PLAIN_TEXT


def detect_content_type(
    head: bytes, display_name: str = "", *, default: str = OCTET_STREAM
) -> str:
    """Sniff ``head`` and refine generic answers from the name's extension."""
    sniffed = sniff_content_type(head)
    if sniffed not in (OCTET_STREAM, PLAIN_TEXT):
        return sniffed

    guessed, _ = mimetypes.guess_type(display_name, strict=False)
    if guessed is None:
        return default if sniffed == OCTET_STREAM else sniffed
    if (sniffed == PLAIN_TEXT) == _is_textual(guessed):
        return guessed
    return default if sniffed == OCTET_STREAM else sniffed


def _is_textual(media_type: str) -> bool:
    return (
        media_type.startswith("text/")
        or media_type in _TEXTUAL_APPLICATION_TYPES
        or media_type.endswith(("+json", "+xml"))
    )
