"""Per-digest mutual exclusion for placement and reclaim critical sections.

A process-local lock is always taken first; when a distributed lock source is
configured (PostgreSQL advisory locks) it is taken inside, so at most one
connection per digest per process waits on the server.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from services.state.file_authority.interfaces import DigestLocks


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    refs: int = 0


class DigestLockTable:
    """Reference-counted table of locks keyed by digest."""

    def __init__(self, *, distributed: DigestLocks | None = None) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._distributed = distributed

    def __len__(self) -> int:
        """Return the number of digests currently held or awaited."""
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, digest_hex: str) -> Iterator[None]:
        """Hold the lock for ``digest_hex`` for the duration of the block."""
        key = digest_hex.lower()
        with self._guard:
            entry = self._entries.setdefault(key, _Entry())
            entry.refs += 1
        try:
            with entry.lock:
                if self._distributed is None:
                    yield
                else:
                    with self._distributed.hold(key):
                        yield
        finally:
            with self._guard:
                entry.refs -= 1
                if entry.refs == 0:
                    del self._entries[key]
