"""Health-check utilities for the catalog database."""

from __future__ import annotations

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError


def ping(engine: Engine, *, timeout_seconds: float = 1.0) -> bool:
    """Return whether the database answers a trivial query in time."""
    timeout_ms = max(1, int(timeout_seconds * 1000))
    try:
        with engine.connect() as conn:
            if engine.dialect.name == "postgresql":
                conn.execute(
                    text("SELECT set_config('statement_timeout', :timeout_value, true)"),
                    {"timeout_value": f"{timeout_ms}ms"},
                )
            conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError):
        return False
