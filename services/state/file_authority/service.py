"""Authoritative in-process Python API for File Authority Service."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.filevault_shared.config import FileVaultSettings
from packages.filevault_shared.envelope import Envelope, EnvelopeMeta
from resources.substrates.filesystem.staging import ReadableStream
from resources.substrates.filesystem.substrate import ObjectStore
from resources.substrates.postgres.substrate import SharedPostgresSubstrate
from services.state.file_authority.domain import (
    DeleteResult,
    FileDownload,
    FileRecord,
    HealthStatus,
    ReclaimReport,
)


class FileAuthorityService(ABC):
    """Public API for deduplicated file storage owned per user."""

    @abstractmethod
    def upload_file(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        display_name: str,
        stream: ReadableStream,
    ) -> Envelope[FileRecord]:
        """Store one upload, sharing its object with identical content."""

    @abstractmethod
    def download_file(
        self, *, meta: EnvelopeMeta, owner_id: str, file_id: str
    ) -> Envelope[FileDownload]:
        """Open one owned file for streaming."""

    @abstractmethod
    def stat_file(
        self, *, meta: EnvelopeMeta, owner_id: str, file_id: str
    ) -> Envelope[FileRecord]:
        """Read one owned file record."""

    @abstractmethod
    def list_files(
        self, *, meta: EnvelopeMeta, owner_id: str
    ) -> Envelope[list[FileRecord]]:
        """List one owner's files, newest first."""

    @abstractmethod
    def delete_file(
        self, *, meta: EnvelopeMeta, owner_id: str, file_id: str
    ) -> Envelope[DeleteResult]:
        """Delete one owned record and reclaim its object when unreferenced."""

    @abstractmethod
    def reclaim_orphans(
        self, *, meta: EnvelopeMeta, dry_run: bool = False
    ) -> Envelope[ReclaimReport]:
        """Remove stored objects no record references, and stale staged files."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return service and owned dependency readiness status."""


def build_file_authority_service(
    *,
    settings: FileVaultSettings,
    object_store: ObjectStore | None = None,
    catalog: SharedPostgresSubstrate | None = None,
) -> FileAuthorityService:
    """Build the default implementation from typed settings."""
    from resources.substrates.filesystem import (
        LocalFilesystemObjectStore,
        resolve_filesystem_substrate_settings,
    )
    from resources.substrates.postgres import resolve_postgres_settings
    from services.state.file_authority.config import resolve_file_authority_settings
    from services.state.file_authority.data import (
        FileCatalogRuntime,
        SqlFileRepository,
    )
    from services.state.file_authority.implementation import (
        DefaultFileAuthorityService,
    )
    from services.state.file_authority.locks import DigestLockTable

    if catalog is None:
        catalog = SharedPostgresSubstrate(settings=resolve_postgres_settings(settings))
    if object_store is None:
        object_store = LocalFilesystemObjectStore(
            settings=resolve_filesystem_substrate_settings(settings)
        )
    runtime = FileCatalogRuntime.from_substrate(catalog)
    return DefaultFileAuthorityService(
        settings=resolve_file_authority_settings(settings),
        repository=SqlFileRepository(runtime.schema_sessions),
        object_store=object_store,
        locks=DigestLockTable(distributed=runtime.advisory_locks),
    )
