"""Concrete File Authority Service implementation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from packages.filevault_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.filevault_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    exception_to_error,
    not_found_error,
    policy_error,
    validation_error,
)
from packages.filevault_shared.logging import get_logger, public_api_instrumented
from resources.substrates.filesystem import (
    ObjectNotFoundError,
    ObjectStore,
    PayloadTooLargeError,
    PlacementError,
    PlacementOutcome,
    SourceReadError,
    StagingError,
)
from resources.substrates.filesystem.staging import ReadableStream
from resources.substrates.postgres.errors import (
    is_database_error,
    normalize_postgres_error,
)
from services.state.file_authority import codes as file_codes
from services.state.file_authority.component import SERVICE_COMPONENT_ID
from services.state.file_authority.config import FileAuthoritySettings
from services.state.file_authority.content_type import detect_content_type
from services.state.file_authority.domain import (
    DeleteResult,
    FileDownload,
    FileRecord,
    HealthStatus,
    ReclaimReport,
)
from services.state.file_authority.interfaces import DigestLocks, FileRepository
from services.state.file_authority.locks import DigestLockTable
from services.state.file_authority.service import FileAuthorityService
from services.state.file_authority.validation import (
    FileRefRequest,
    OwnerRequest,
    UploadFileRequest,
)

_LOGGER = get_logger(__name__)


class DefaultFileAuthorityService(FileAuthorityService):
    """Default implementation over a SQL catalog and a local object store.

    Placement plus record insert, and record delete plus reference count plus
    object removal, each run under the per-digest lock so a zero count can
    never race a new reference to the same digest.
    """

    def __init__(
        self,
        *,
        settings: FileAuthoritySettings,
        repository: FileRepository,
        object_store: ObjectStore,
        locks: DigestLocks | None = None,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._object_store = object_store
        self._locks = locks if locks is not None else DigestLockTable()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness of the catalog and the object store."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)

        try:
            catalog_ready = self._repository.ping()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "catalog health check failed: exception_type=%s", type(exc).__name__
            )
            catalog_ready = False
        store_status = self._object_store.health()

        details = []
        if not catalog_ready:
            details.append("catalog unavailable")
        if not store_status.ready:
            details.append(store_status.detail)
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=catalog_ready and store_status.ready,
                catalog_ready=catalog_ready,
                object_store_ready=store_status.ready,
                detail="; ".join(details) or "ok",
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id",),
    )
    def upload_file(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        display_name: str,
        stream: ReadableStream,
    ) -> Envelope[FileRecord]:
        """Stage, hash, place and catalog one upload."""
        request, errors = self._validate_request(
            meta=meta,
            model=UploadFileRequest,
            payload={"owner_id": owner_id, "display_name": display_name},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, UploadFileRequest)

        try:
            staged = self._object_store.stage(
                stream, max_bytes=self._settings.max_upload_size_bytes
            )
        except PayloadTooLargeError as exc:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        "upload exceeds max_upload_size_bytes",
                        code=file_codes.PAYLOAD_TOO_LARGE,
                        metadata={"limit_bytes": str(exc.limit_bytes)},
                    )
                ],
            )
        except SourceReadError as exc:
            return self._dependency_failure(
                meta=meta,
                operation="upload_file",
                code=file_codes.INPUT_UNAVAILABLE,
                exc=exc,
            )
        except StagingError as exc:
            return self._dependency_failure(
                meta=meta,
                operation="upload_file",
                code=file_codes.STAGING_FAILURE,
                exc=exc,
            )

        content_type = detect_content_type(
            staged.head,
            request.display_name,
            default=self._settings.default_content_type,
        )
        try:
            with self._locks.hold(staged.digest_hex):
                try:
                    outcome = self._object_store.place(
                        digest_hex=staged.digest_hex, staged_path=staged.path
                    )
                except PlacementError as exc:
                    return self._dependency_failure(
                        meta=meta,
                        operation="upload_file",
                        code=file_codes.PLACEMENT_FAILURE,
                        exc=exc,
                    )

                try:
                    record = self._repository.insert_file(
                        owner_id=request.owner_id,
                        display_name=request.display_name,
                        content_type=content_type,
                        size_bytes=staged.size_bytes,
                        digest_hex=staged.digest_hex,
                    )
                except Exception as exc:  # noqa: BLE001
                    if outcome is PlacementOutcome.PLACED:
                        self._cleanup_orphaned_object(digest_hex=staged.digest_hex)
                    return self._catalog_failure(
                        meta=meta, operation="upload_file", exc=exc
                    )
        except Exception as exc:  # noqa: BLE001
            return self._catalog_failure(meta=meta, operation="upload_file", exc=exc)
        finally:
            self._object_store.discard_staged(staged.path)

        _LOGGER.info(
            "file stored: file_id=%s digest=%s size_bytes=%d outcome=%s",
            record.id,
            record.digest_hex,
            record.size_bytes,
            outcome.value,
        )
        return success(meta=meta, payload=record)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "file_id"),
    )
    def download_file(
        self, *, meta: EnvelopeMeta, owner_id: str, file_id: str
    ) -> Envelope[FileDownload]:
        """Open one owned file; the caller closes the returned stream."""
        request, lookup = self._owned_record(
            meta=meta, owner_id=owner_id, file_id=file_id, operation="download_file"
        )
        if not lookup.ok:
            return failure(meta=meta, errors=lookup.errors)
        assert request is not None and lookup.payload is not None
        record: FileRecord = lookup.payload.value

        try:
            handle = self._object_store.open(digest_hex=record.digest_hex)
        except ObjectNotFoundError:
            # A delete may have reclaimed the object after the lookup above.
            try:
                current = self._repository.get_file(file_id=record.id)
            except Exception as exc:  # noqa: BLE001
                return self._catalog_failure(
                    meta=meta, operation="download_file", exc=exc
                )
            if current is None:
                return self._not_found(meta=meta, file_id=record.id)
            _LOGGER.error(
                "catalog record references a missing object: file_id=%s digest=%s",
                record.id,
                record.digest_hex,
            )
            return failure(
                meta=meta,
                errors=[
                    not_found_error(
                        "stored object is missing",
                        code=file_codes.OBJECT_MISSING,
                        metadata={"file_id": record.id},
                    )
                ],
            )
        except OSError as exc:
            return self._dependency_failure(
                meta=meta,
                operation="download_file",
                code=file_codes.OBJECT_STORE_UNAVAILABLE,
                exc=exc,
            )

        self._record_download(record)
        return success(
            meta=meta,
            payload=FileDownload(
                record=record, stream=handle.stream, size_bytes=handle.size_bytes
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "file_id"),
    )
    def stat_file(
        self, *, meta: EnvelopeMeta, owner_id: str, file_id: str
    ) -> Envelope[FileRecord]:
        """Read one owned file record."""
        _, lookup = self._owned_record(
            meta=meta, owner_id=owner_id, file_id=file_id, operation="stat_file"
        )
        return lookup

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id",),
    )
    def list_files(
        self, *, meta: EnvelopeMeta, owner_id: str
    ) -> Envelope[list[FileRecord]]:
        """List one owner's files, newest first."""
        request, errors = self._validate_request(
            meta=meta, model=OwnerRequest, payload={"owner_id": owner_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, OwnerRequest)

        try:
            records = self._repository.list_files_by_owner(owner_id=request.owner_id)
        except Exception as exc:  # noqa: BLE001
            return self._catalog_failure(meta=meta, operation="list_files", exc=exc)
        return success(meta=meta, payload=list(records))

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "file_id"),
    )
    def delete_file(
        self, *, meta: EnvelopeMeta, owner_id: str, file_id: str
    ) -> Envelope[DeleteResult]:
        """Delete one owned record, then its object if nothing else refers to it."""
        request, lookup = self._owned_record(
            meta=meta, owner_id=owner_id, file_id=file_id, operation="delete_file"
        )
        if not lookup.ok:
            return failure(meta=meta, errors=lookup.errors)
        assert request is not None and lookup.payload is not None
        record: FileRecord = lookup.payload.value

        try:
            with self._locks.hold(record.digest_hex):
                deleted = self._repository.delete_file(
                    file_id=request.file_id, owner_id=request.owner_id
                )
                if not deleted:
                    return self._not_found(meta=meta, file_id=request.file_id)
                remaining = self._count_references(digest_hex=record.digest_hex)
                reclaimed = remaining == 0 and self._remove_object(
                    digest_hex=record.digest_hex
                )
        except Exception as exc:  # noqa: BLE001
            return self._catalog_failure(meta=meta, operation="delete_file", exc=exc)

        if remaining == 0:
            _LOGGER.info(
                "last reference deleted: digest=%s object_reclaimed=%s",
                record.digest_hex,
                reclaimed,
            )
        return success(
            meta=meta,
            payload=DeleteResult(
                file_id=record.id,
                digest_hex=record.digest_hex,
                object_reclaimed=reclaimed,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    def reclaim_orphans(
        self, *, meta: EnvelopeMeta, dry_run: bool = False
    ) -> Envelope[ReclaimReport]:
        """Remove unreferenced objects and stale staged files."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)

        scanned = 0
        reclaimed: list[str] = []
        try:
            for digest_hex in self._object_store.iter_digests():
                scanned += 1
                with self._locks.hold(digest_hex):
                    if self._repository.count_by_digest(digest_hex=digest_hex) > 0:
                        continue
                    if not dry_run:
                        self._object_store.remove(digest_hex=digest_hex)
                    reclaimed.append(digest_hex)
        except Exception as exc:  # noqa: BLE001
            if is_database_error(exc):
                return self._catalog_failure(
                    meta=meta, operation="reclaim_orphans", exc=exc
                )
            return self._dependency_failure(
                meta=meta,
                operation="reclaim_orphans",
                code=file_codes.OBJECT_STORE_UNAVAILABLE,
                exc=exc,
            )

        staged_removed = 0
        if not dry_run:
            try:
                staged_removed = self._object_store.sweep_staging(
                    older_than_seconds=self._settings.staging_max_age_seconds
                )
            except OSError as exc:
                return self._dependency_failure(
                    meta=meta,
                    operation="reclaim_orphans",
                    code=file_codes.STAGING_FAILURE,
                    exc=exc,
                )

        _LOGGER.info(
            "reclaim pass finished: scanned=%d reclaimed=%d staged_removed=%d "
            "dry_run=%s",
            scanned,
            len(reclaimed),
            staged_removed,
            dry_run,
        )
        return success(
            meta=meta,
            payload=ReclaimReport(
                dry_run=dry_run,
                scanned_objects=scanned,
                reclaimed_digests=reclaimed,
                staged_files_removed=staged_removed,
            ),
        )

    def _owned_record(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        file_id: str,
        operation: str,
    ) -> tuple[FileRefRequest | None, Envelope[FileRecord]]:
        """Validate a file reference and load the record it names for its owner."""
        request, errors = self._validate_request(
            meta=meta,
            model=FileRefRequest,
            payload={"owner_id": owner_id, "file_id": file_id},
        )
        if errors:
            return None, failure(meta=meta, errors=errors)
        assert isinstance(request, FileRefRequest)

        try:
            record = self._repository.get_file(file_id=request.file_id)
        except Exception as exc:  # noqa: BLE001
            return request, self._catalog_failure(
                meta=meta, operation=operation, exc=exc
            )
        if record is None:
            return request, self._not_found(meta=meta, file_id=request.file_id)
        if record.owner_id != request.owner_id:
            return request, failure(
                meta=meta,
                errors=[
                    policy_error(
                        "file belongs to another owner",
                        code=codes.PERMISSION_DENIED,
                        metadata={"file_id": request.file_id},
                    )
                ],
            )
        return request, success(meta=meta, payload=record)

    def _count_references(self, *, digest_hex: str) -> int:
        """Count references, retrying once before the failure propagates."""
        attempts = 1 + self._settings.count_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return self._repository.count_by_digest(digest_hex=digest_hex)
            except Exception as exc:  # noqa: BLE001
                if attempt == attempts:
                    raise
                _LOGGER.warning(
                    "reference count failed, retrying: digest=%s exception_type=%s",
                    digest_hex,
                    type(exc).__name__,
                )
        raise AssertionError("unreachable")

    def _remove_object(self, *, digest_hex: str) -> bool:
        """Remove one unreferenced object; a failure leaves a logged orphan."""
        try:
            return self._object_store.remove(digest_hex=digest_hex)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "object removal failed, left for reclaim: digest=%s exception_type=%s",
                digest_hex,
                type(exc).__name__,
                exc_info=exc,
            )
            return False

    def _cleanup_orphaned_object(self, *, digest_hex: str) -> None:
        """Best-effort removal of an object placed before a failed insert."""
        try:
            if self._repository.count_by_digest(digest_hex=digest_hex) > 0:
                return
        except Exception:  # noqa: BLE001
            _LOGGER.warning(
                "orphaned object kept, catalog unreadable: digest=%s", digest_hex
            )
            return
        self._remove_object(digest_hex=digest_hex)

    def _record_download(self, record: FileRecord) -> None:
        """Increment the download counter; failures never fail the download."""
        try:
            self._repository.increment_download_count(
                file_id=record.id, owner_id=record.owner_id
            )
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "download counter not updated: file_id=%s exception_type=%s",
                record.id,
                type(exc).__name__,
            )

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        payload: dict[str, Any] | None,
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata and request payload model."""
        errors = validate_meta(meta)
        if errors:
            return None, errors

        data = payload or {}
        try:
            request = model.model_validate(data)
        except ValidationError as exc:
            return None, [
                validation_error(
                    f"request validation failed: {err['msg']}",
                    code=codes.INVALID_ARGUMENT,
                    metadata={"field": ".".join(str(p) for p in err["loc"])},
                )
                for err in exc.errors()
            ]

        return request, []

    def _not_found(self, *, meta: EnvelopeMeta, file_id: str) -> Envelope[Any]:
        """Return canonical not-found envelope for file-id lookups."""
        return failure(
            meta=meta,
            errors=[
                not_found_error(
                    "file not found",
                    code=codes.RESOURCE_NOT_FOUND,
                    metadata={"file_id": file_id},
                )
            ],
        )

    def _catalog_failure(
        self, *, meta: EnvelopeMeta, operation: str, exc: Exception
    ) -> Envelope[Any]:
        """Map one catalog exception into a ``CATALOG_UNAVAILABLE`` envelope."""
        if is_database_error(exc):
            retryable = normalize_postgres_error(exc).retryable
        else:
            retryable = exception_to_error(exc).retryable
        _LOGGER.warning(
            "%s failed: catalog unavailable: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed: catalog unavailable",
                    code=file_codes.CATALOG_UNAVAILABLE,
                    retryable=retryable,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        code: str,
        exc: Exception,
    ) -> Envelope[Any]:
        """Map one storage or input exception into structured envelope errors."""
        _LOGGER.warning(
            "%s failed due to dependency error: code=%s exception_type=%s",
            operation,
            code,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=code,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )
