"""Local-disk content-addressed object store.

Objects are immutable files at ``objects/<d[0:2]>/<d[2:4]>/<digest>``.
Publishing uses ``os.link`` so that a placement either creates the final name
atomically or observes that another placement already did; an existing object
is never overwritten. When the staging directory cannot hard-link into the
object tree (another volume, or a filesystem without links) the staged bytes
are copied into a temporary file beside the target and published from there.
"""

from __future__ import annotations

import errno
import os
import shutil
import time
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Iterator

from packages.filevault_shared.logging import get_logger
from resources.substrates.filesystem.config import FilesystemSubstrateSettings
from resources.substrates.filesystem.errors import (
    ObjectNotFoundError,
    PlacementError,
)
from resources.substrates.filesystem.staging import (
    STAGED_SUFFIX,
    ReadableStream,
    StagedUpload,
    stage_stream,
)
from resources.substrates.filesystem.substrate import (
    FilesystemHealthStatus,
    ObjectHandle,
    ObjectStore,
    PlacementOutcome,
)
from resources.substrates.filesystem.validation import (
    is_digest_hex,
    normalize_digest_hex,
)

_LOGGER = get_logger(__name__)

# errnos meaning "hard links are not possible here", as opposed to real failures.
_NO_HARDLINK_ERRNOS = frozenset(
    code
    for code in (
        errno.EXDEV,
        errno.EPERM,
        errno.EMLINK,
        getattr(errno, "ENOTSUP", None),
        getattr(errno, "EOPNOTSUPP", None),
        getattr(errno, "ENOSYS", None),
    )
    if code is not None
)


class LocalFilesystemObjectStore(ObjectStore):
    """Persist and retrieve immutable objects on local disk by digest."""

    def __init__(self, *, settings: FilesystemSubstrateSettings) -> None:
        self._settings = settings
        self._objects = settings.objects_path()
        self._staging = settings.staging_path()

    @property
    def settings(self) -> FilesystemSubstrateSettings:
        return self._settings

    def health(self) -> FilesystemHealthStatus:
        """Return readiness of the object and staging directories."""
        for directory in (self._objects, self._staging):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                return FilesystemHealthStatus(
                    ready=False,
                    detail=f"filesystem health check failed: {type(exc).__name__}",
                )
            if not os.access(directory, os.W_OK):
                return FilesystemHealthStatus(
                    ready=False, detail=f"directory is not writable: {directory}"
                )
        return FilesystemHealthStatus(ready=True, detail="ok")

    def resolve_path(self, *, digest_hex: str) -> Path:
        """Resolve the sharded object path for one digest."""
        digest = normalize_digest_hex(digest_hex)
        return self._objects / digest[:2] / digest[2:4] / digest

    def stage(
        self, stream: ReadableStream, *, max_bytes: int | None = None
    ) -> StagedUpload:
        """Stage ``stream`` into the staging directory, hashing it."""
        return stage_stream(
            stream,
            staging_dir=self._staging,
            prefix=self._settings.temp_prefix,
            chunk_size=self._settings.chunk_size_bytes,
            head_size=self._settings.sniff_bytes,
            max_bytes=max_bytes,
            fsync=self._settings.fsync_writes,
        )

    def place(self, *, digest_hex: str, staged_path: Path) -> PlacementOutcome:
        """Publish ``staged_path`` as the object for ``digest_hex``.

        Returns ``DEDUPLICATED`` when an object already exists (including one
        published concurrently), leaving it untouched. The staged file is
        removed on every path. Raises ``PlacementError`` on real failures, in
        which case no object is left under the target name by this call.
        """
        try:
            target = self.resolve_path(digest_hex=digest_hex)
            if target.exists():
                return PlacementOutcome.DEDUPLICATED
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise PlacementError(
                    f"cannot create shard directory for {digest_hex}"
                ) from exc

            try:
                os.link(staged_path, target)
            except FileExistsError:
                return PlacementOutcome.DEDUPLICATED
            except OSError as exc:
                if exc.errno not in _NO_HARDLINK_ERRNOS:
                    raise PlacementError(f"cannot place object {digest_hex}") from exc
                _LOGGER.debug(
                    "hard link unavailable, copying into place: errno=%s", exc.errno
                )
                outcome = self._copy_into_place(staged_path, target)
                if outcome is PlacementOutcome.DEDUPLICATED:
                    return outcome

            self._sync_published(target)
            return PlacementOutcome.PLACED
        finally:
            self.discard_staged(staged_path)

    def discard_staged(self, staged_path: Path) -> None:
        """Remove one staged file; a failure is logged, not raised."""
        try:
            staged_path.unlink(missing_ok=True)
        except OSError as exc:
            _LOGGER.warning(
                "failed to discard staged file: path=%s exception_type=%s",
                staged_path,
                type(exc).__name__,
            )

    def remove(self, *, digest_hex: str) -> bool:
        """Remove one object; an absent object is not an error."""
        path = self.resolve_path(digest_hex=digest_hex)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def open(self, *, digest_hex: str) -> ObjectHandle:
        """Open one object for streaming reads."""
        digest = normalize_digest_hex(digest_hex)
        path = self.resolve_path(digest_hex=digest)
        try:
            stream = path.open("rb")
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(digest) from exc
        try:
            size_bytes = os.fstat(stream.fileno()).st_size
        except OSError:
            stream.close()
            raise
        return ObjectHandle(digest_hex=digest, stream=stream, size_bytes=size_bytes)

    def exists(self, *, digest_hex: str) -> bool:
        """Return whether an object is stored under ``digest_hex``."""
        return self.resolve_path(digest_hex=digest_hex).is_file()

    def iter_digests(self) -> Iterator[str]:
        """Yield every stored digest in lexical order."""
        if not self._objects.is_dir():
            return
        for first in sorted(self._objects.iterdir()):
            if not first.is_dir() or len(first.name) != 2:
                continue
            for second in sorted(first.iterdir()):
                if not second.is_dir() or len(second.name) != 2:
                    continue
                for candidate in sorted(second.iterdir()):
                    name = candidate.name
                    if is_digest_hex(name) and name.startswith(first.name + second.name):
                        yield name

    def sweep_staging(self, *, older_than_seconds: float) -> int:
        """Remove staged and copy-temporary files older than the cutoff."""
        cutoff = time.time() - older_than_seconds
        candidates: list[Path] = []
        if self._staging.is_dir():
            candidates.extend(
                self._staging.glob(f"{self._settings.temp_prefix}-*{STAGED_SUFFIX}")
            )
        if self._objects.is_dir():
            candidates.extend(
                self._objects.glob(
                    f"*/*/.{self._settings.temp_prefix}-*{STAGED_SUFFIX}"
                )
            )

        removed = 0
        for path in candidates:
            try:
                if path.stat().st_mtime >= cutoff:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            removed += 1
        return removed

    def _copy_into_place(self, source: Path, target: Path) -> PlacementOutcome:
        """Copy ``source`` beside ``target`` and publish it without clobbering."""
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="wb",
                prefix=f".{self._settings.temp_prefix}-",
                suffix=STAGED_SUFFIX,
                dir=target.parent,
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                with source.open("rb") as reader:
                    shutil.copyfileobj(reader, handle, self._settings.chunk_size_bytes)
                handle.flush()
                if self._settings.fsync_writes:
                    os.fsync(handle.fileno())

            try:
                os.link(tmp_path, target)
            except FileExistsError:
                return PlacementOutcome.DEDUPLICATED
            except OSError as exc:
                if exc.errno not in _NO_HARDLINK_ERRNOS:
                    raise
                # No hard links on this volume at all; rename cannot refuse an
                # existing name, so the existence check is the only guard.
                if target.exists():
                    return PlacementOutcome.DEDUPLICATED
                os.rename(tmp_path, target)
                tmp_path = None
            return PlacementOutcome.PLACED
        except OSError as exc:
            raise PlacementError(f"cannot copy object into {target.name}") from exc
        finally:
            if tmp_path is not None:
                self.discard_staged(tmp_path)

    def _sync_published(self, target: Path) -> None:
        """Flush the shard directory entry; unpublish on failure."""
        if not self._settings.fsync_writes:
            return
        try:
            fd = os.open(target.parent, os.O_RDONLY)
            try:
                os.fsync(fd)
            finally:
                os.close(fd)
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise PlacementError(
                f"cannot sync shard directory for {target.name}"
            ) from exc
