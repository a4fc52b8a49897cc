"""Catalog database settings resolution."""

from __future__ import annotations

from packages.filevault_shared.config import FileVaultSettings, PostgresSettings

__all__ = ["PostgresSettings", "resolve_postgres_settings"]


def resolve_postgres_settings(settings: FileVaultSettings) -> PostgresSettings:
    """Return the root ``postgres`` settings subtree."""
    return settings.postgres
