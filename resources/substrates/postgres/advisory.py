"""PostgreSQL session-level advisory locks keyed by content digest.

Advisory locks extend per-digest mutual exclusion across processes sharing one
catalog. Each held lock keeps one connection open until it is released, so
the engine given here should not share a pool with the catalog queries the
locked section runs.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, text

from packages.filevault_shared.logging import get_logger

_LOGGER = get_logger(__name__)


def digest_lock_key(digest_hex: str) -> int:
    """Return the signed 64-bit advisory key for one sha256 digest."""
    return int.from_bytes(bytes.fromhex(digest_hex[:16]), "big", signed=True)


class PostgresAdvisoryLocks:
    """Blocking ``pg_advisory_lock`` holder for digest-keyed sections."""

    def __init__(self, *, engine: Engine) -> None:
        if engine.dialect.name != "postgresql":
            raise ValueError("advisory locks require a postgresql engine")
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def hold(self, digest_hex: str) -> Iterator[None]:
        """Hold the advisory lock for ``digest_hex`` for the block."""
        key = digest_lock_key(digest_hex)
        connection = self._engine.connect()
        try:
            connection.execute(text("SELECT pg_advisory_lock(:key)"), {"key": key})
            connection.commit()
        except BaseException:
            connection.close()
            raise

        try:
            yield
        finally:
            try:
                connection.execute(
                    text("SELECT pg_advisory_unlock(:key)"), {"key": key}
                )
                connection.commit()
            except Exception as exc:  # noqa: BLE001
                # Dropping the server session releases every lock it holds.
                _LOGGER.warning(
                    "advisory unlock failed, discarding connection: "
                    "exception_type=%s",
                    type(exc).__name__,
                )
                connection.invalidate()
            finally:
                connection.close()
