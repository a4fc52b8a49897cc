"""Fixtures wiring File Authority Service over SQLite and a temp directory."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from packages.filevault_shared.config import PostgresSettings
from resources.substrates.filesystem import (
    FilesystemSubstrateSettings,
    LocalFilesystemObjectStore,
)
from resources.substrates.postgres import SharedPostgresSubstrate
from services.state.file_authority.config import FileAuthoritySettings
from services.state.file_authority.data import (
    FileCatalogRuntime,
    SqlFileRepository,
    metadata,
)
from services.state.file_authority.implementation import DefaultFileAuthorityService
from services.state.file_authority.locks import DigestLockTable


@pytest.fixture()
def catalog(tmp_path: Path) -> Iterator[SharedPostgresSubstrate]:
    """Provide a file-backed SQLite catalog with the ``files`` table created."""
    substrate = SharedPostgresSubstrate(
        settings=PostgresSettings(url=f"sqlite:///{tmp_path / 'catalog.db'}")
    )
    metadata.create_all(substrate.engine)
    yield substrate
    substrate.dispose()


@pytest.fixture()
def sql_repository(catalog: SharedPostgresSubstrate) -> SqlFileRepository:
    return SqlFileRepository(FileCatalogRuntime.from_substrate(catalog).schema_sessions)


@pytest.fixture()
def object_store(tmp_path: Path) -> LocalFilesystemObjectStore:
    return LocalFilesystemObjectStore(
        settings=FilesystemSubstrateSettings(
            root_dir=str(tmp_path / "store"), fsync_writes=False
        )
    )


@pytest.fixture()
def sql_service(
    sql_repository: SqlFileRepository, object_store: LocalFilesystemObjectStore
) -> DefaultFileAuthorityService:
    """Build the service over the SQLite catalog and local object store."""
    return DefaultFileAuthorityService(
        settings=FileAuthoritySettings(),
        repository=sql_repository,
        object_store=object_store,
        locks=DigestLockTable(),
    )
