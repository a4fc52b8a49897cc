"""Single-pass staging of an upload stream.

The stream is copied to a uniquely named file in the staging directory while
its SHA-256 digest and leading bytes are computed, so memory use stays bounded
by ``chunk_size`` regardless of upload size.
"""

from __future__ import annotations

import hashlib
import os
import time
from dataclasses import dataclass
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import BinaryIO, Protocol

from resources.substrates.filesystem.errors import (
    PayloadTooLargeError,
    SourceReadError,
    StagingError,
)

STAGED_SUFFIX = ".tmp"


class ReadableStream(Protocol):
    """Minimal readable byte stream accepted as an upload source."""

    def read(self, size: int = -1, /) -> bytes:
        """Return up to ``size`` bytes; empty bytes at end of stream."""


@dataclass(frozen=True)
class StagedUpload:
    """A fully written staged file and the facts computed while writing it."""

    path: Path
    digest_hex: str
    size_bytes: int
    head: bytes


def staged_name_prefix(prefix: str) -> str:
    """Return a per-attempt filename prefix for staged files."""
    return f"{prefix}-{os.getpid()}-{time.monotonic_ns()}-"


def stage_stream(
    stream: ReadableStream,
    *,
    staging_dir: Path,
    prefix: str,
    chunk_size: int,
    head_size: int = 512,
    max_bytes: int | None = None,
    fsync: bool = True,
) -> StagedUpload:
    """Copy ``stream`` into a new staged file, hashing as it goes.

    Raises ``SourceReadError`` when the source fails, ``PayloadTooLargeError``
    past ``max_bytes``, and ``StagingError`` for local write failures. The
    staged file is removed before any exception leaves this function,
    cancellation included.
    """
    try:
        staging_dir.mkdir(parents=True, exist_ok=True)
        handle = NamedTemporaryFile(
            mode="wb",
            prefix=staged_name_prefix(prefix),
            suffix=STAGED_SUFFIX,
            dir=staging_dir,
            delete=False,
        )
    except OSError as exc:
        raise StagingError(f"cannot create staged file in {staging_dir}") from exc

    path = Path(handle.name)
    try:
        try:
            with handle:
                digest_hex, size_bytes, head = _copy_hashing(
                    stream,
                    handle,
                    chunk_size=chunk_size,
                    head_size=head_size,
                    max_bytes=max_bytes,
                )
                handle.flush()
                if fsync:
                    os.fsync(handle.fileno())
        except OSError as exc:
            raise StagingError(f"cannot write staged file {path.name}") from exc
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    return StagedUpload(
        path=path,
        digest_hex=digest_hex,
        size_bytes=size_bytes,
        head=head,
    )


def _copy_hashing(
    stream: ReadableStream,
    sink: BinaryIO,
    *,
    chunk_size: int,
    head_size: int,
    max_bytes: int | None,
) -> tuple[str, int, bytes]:
    hasher = hashlib.sha256()
    head = bytearray()
    size_bytes = 0
    while True:
        try:
            chunk = stream.read(chunk_size)
        except Exception as exc:  # noqa: BLE001
            raise SourceReadError(
                f"upload source read failed: {type(exc).__name__}"
            ) from exc
        if not chunk:
            break

        size_bytes += len(chunk)
        if max_bytes is not None and size_bytes > max_bytes:
            raise PayloadTooLargeError(max_bytes)
        hasher.update(chunk)
        if len(head) < head_size:
            head.extend(chunk[: head_size - len(head)])
        sink.write(chunk)
    return hasher.hexdigest(), size_bytes, bytes(head)
