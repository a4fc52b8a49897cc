"""HTTP adapter routes for File Authority Service.

Caller identity is taken from the ``X-Owner-Id`` header; authenticating it is
the job of whatever sits in front of this process.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, BinaryIO
from urllib.parse import quote

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse

from packages.filevault_shared.envelope import EnvelopeKind, EnvelopeMeta, new_meta
from packages.filevault_shared.http import error_response, get_header
from services.state.file_authority import codes as file_codes
from services.state.file_authority.domain import FileRecord
from services.state.file_authority.service import FileAuthorityService

OWNER_HEADER = "X-Owner-Id"
TRACE_HEADER = "X-Trace-Id"
DOWNLOAD_CHUNK_SIZE = 64 * 1024

_STATUS_OVERRIDES = {file_codes.PAYLOAD_TOO_LARGE: 413}


def register_routes(*, router: APIRouter, service: FileAuthorityService) -> None:
    """Register File Authority routes on ``router``."""

    @router.post("/upload")
    def upload(request: Request, file: UploadFile = File(...)) -> Response:
        owner_id = get_header(request, OWNER_HEADER)
        result = service.upload_file(
            meta=_meta(request, kind=EnvelopeKind.COMMAND, principal=owner_id),
            owner_id=owner_id,
            display_name=file.filename or "",
            stream=file.file,
        )
        if not result.ok or result.payload is None:
            return error_response(result.errors, overrides=_STATUS_OVERRIDES)
        record = result.payload.value
        return JSONResponse(
            {
                "message": "File uploaded successfully",
                "id": record.id,
                "hash": record.digest_hex,
                "mime": record.content_type,
                "size": record.size_bytes,
            }
        )

    @router.get("/files")
    def list_files(request: Request) -> Response:
        owner_id = get_header(request, OWNER_HEADER)
        result = service.list_files(
            meta=_meta(request, kind=EnvelopeKind.QUERY, principal=owner_id),
            owner_id=owner_id,
        )
        if not result.ok:
            return error_response(result.errors)
        records = [] if result.payload is None else result.payload.value
        return JSONResponse([record_to_json(record) for record in records])

    @router.get("/files/{file_id}")
    def stat_file(request: Request, file_id: str) -> Response:
        owner_id = get_header(request, OWNER_HEADER)
        result = service.stat_file(
            meta=_meta(request, kind=EnvelopeKind.QUERY, principal=owner_id),
            owner_id=owner_id,
            file_id=file_id,
        )
        if not result.ok or result.payload is None:
            return error_response(result.errors)
        return JSONResponse(record_to_json(result.payload.value))

    @router.get("/files/{file_id}/download")
    def download_file(request: Request, file_id: str) -> Response:
        owner_id = get_header(request, OWNER_HEADER)
        result = service.download_file(
            meta=_meta(request, kind=EnvelopeKind.QUERY, principal=owner_id),
            owner_id=owner_id,
            file_id=file_id,
        )
        if not result.ok or result.payload is None:
            return error_response(result.errors)
        download = result.payload.value
        return StreamingResponse(
            _iter_stream(download.stream),
            media_type=download.content_type,
            headers={
                "Content-Disposition": content_disposition(download.display_name),
                "Content-Length": str(download.size_bytes),
            },
        )

    @router.delete("/files/{file_id}")
    def delete_file(request: Request, file_id: str) -> Response:
        owner_id = get_header(request, OWNER_HEADER)
        result = service.delete_file(
            meta=_meta(request, kind=EnvelopeKind.COMMAND, principal=owner_id),
            owner_id=owner_id,
            file_id=file_id,
        )
        if not result.ok or result.payload is None:
            return error_response(result.errors)
        deleted = result.payload.value
        return JSONResponse(
            {
                "message": "deleted",
                "id": deleted.file_id,
                "object_reclaimed": deleted.object_reclaimed,
            }
        )

    @router.get("/health")
    def health(request: Request) -> Response:
        result = service.health(
            meta=_meta(request, kind=EnvelopeKind.QUERY, principal="health")
        )
        if not result.ok or result.payload is None:
            return error_response(result.errors)
        status = result.payload.value
        return JSONResponse(
            status.model_dump(mode="json"),
            status_code=200 if status.service_ready else 503,
        )


def record_to_json(record: FileRecord) -> dict[str, Any]:
    """Render one record in the listing shape served to clients."""
    return {
        "id": record.id,
        "filename": record.display_name,
        "size": record.size_bytes,
        "mime_type": record.content_type,
        "hash": record.digest_hex,
        "upload_date": record.created_at.isoformat(),
        "download_count": record.download_count,
    }


def content_disposition(display_name: str) -> str:
    """Build an attachment header with an ASCII fallback and RFC 5987 name."""
    fallback = "".join(
        char if 0x20 <= ord(char) < 0x7F and char not in '"\\' else "_"
        for char in display_name
    )
    header = f'attachment; filename="{fallback}"'
    if fallback != display_name:
        header += f"; filename*=UTF-8''{quote(display_name, safe='')}"
    return header


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    """Yield ``stream`` in chunks and close it when done or abandoned."""
    try:
        while True:
            chunk = stream.read(DOWNLOAD_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


def _meta(request: Request, *, kind: EnvelopeKind, principal: str) -> EnvelopeMeta:
    """Build envelope metadata for one inbound HTTP request."""
    return new_meta(
        kind=kind,
        source="http",
        principal=principal,
        trace_id=get_header(request, TRACE_HEADER, required=False),
    )
