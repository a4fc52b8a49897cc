"""HTTP route tests for File Authority Service over an in-process client."""

from __future__ import annotations

import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient

from packages.filevault_shared.http import create_app
from resources.substrates.filesystem import LocalFilesystemObjectStore
from services.state.file_authority.api import content_disposition, register_routes
from services.state.file_authority.config import FileAuthoritySettings
from services.state.file_authority.data import SqlFileRepository
from services.state.file_authority.implementation import DefaultFileAuthorityService
from services.state.file_authority.service import FileAuthorityService

HELLO_WORLD_DIGEST = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"
ALICE = {"X-Owner-Id": "alice"}
BOB = {"X-Owner-Id": "bob"}


def _client(service: FileAuthorityService) -> TestClient:
    app = create_app()
    router = APIRouter()
    register_routes(router=router, service=service)
    app.include_router(router)
    return TestClient(app)


@pytest.fixture()
def client(sql_service: DefaultFileAuthorityService) -> TestClient:
    return _client(sql_service)


def _upload(client: TestClient, name: str, data: bytes, headers=ALICE):
    return client.post(
        "/upload",
        files={"file": (name, data, "application/octet-stream")},
        headers=headers,
    )


def test_upload_returns_identity_digest_and_type(client: TestClient) -> None:
    response = _upload(client, "hello.txt", b"hello world")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "File uploaded successfully"
    assert body["hash"] == HELLO_WORLD_DIGEST
    assert body["mime"] == "text/plain; charset=utf-8"
    assert body["size"] == 11
    assert len(body["id"]) == 26


def test_missing_owner_header_is_unauthorized(client: TestClient) -> None:
    response = client.get("/files")

    assert response.status_code == 401
    assert response.json()["ok"] is False


def test_list_and_stat_render_records(client: TestClient) -> None:
    file_id = _upload(client, "a.txt", b"alpha").json()["id"]
    _upload(client, "b.txt", b"beta", headers=BOB)

    listing = client.get("/files", headers=ALICE)
    stat = client.get(f"/files/{file_id}", headers=ALICE)

    assert listing.status_code == 200
    assert [item["id"] for item in listing.json()] == [file_id]
    assert stat.status_code == 200
    assert stat.json()["filename"] == "a.txt"
    assert stat.json()["size"] == 5
    assert stat.json()["download_count"] == 0


def test_download_streams_content_with_headers(client: TestClient) -> None:
    file_id = _upload(client, "hello.txt", b"hello world").json()["id"]

    response = client.get(f"/files/{file_id}/download", headers=ALICE)

    assert response.status_code == 200
    assert response.content == b"hello world"
    assert response.headers["content-type"] == "text/plain; charset=utf-8"
    assert response.headers["content-length"] == "11"
    assert response.headers["content-disposition"] == 'attachment; filename="hello.txt"'
    stat = client.get(f"/files/{file_id}", headers=ALICE)
    assert stat.json()["download_count"] == 1


def test_other_owner_is_forbidden(client: TestClient) -> None:
    file_id = _upload(client, "a.txt", b"alpha").json()["id"]

    response = client.get(f"/files/{file_id}/download", headers=BOB)

    assert response.status_code == 403


def test_delete_then_download_is_not_found(client: TestClient) -> None:
    file_id = _upload(client, "a.txt", b"alpha").json()["id"]

    deleted = client.delete(f"/files/{file_id}", headers=ALICE)
    missing = client.get(f"/files/{file_id}/download", headers=ALICE)

    assert deleted.status_code == 200
    assert deleted.json() == {
        "message": "deleted",
        "id": file_id,
        "object_reclaimed": True,
    }
    assert missing.status_code == 404


def test_malformed_file_id_is_bad_request(client: TestClient) -> None:
    response = client.get("/files/not-a-ulid", headers=ALICE)

    assert response.status_code == 400
    assert response.json()["errors"][0]["category"] == "validation"


def test_oversized_upload_is_rejected_with_413(
    sql_repository: SqlFileRepository, object_store: LocalFilesystemObjectStore
) -> None:
    service = DefaultFileAuthorityService(
        settings=FileAuthoritySettings(max_upload_size_bytes=4),
        repository=sql_repository,
        object_store=object_store,
    )
    client = _client(service)

    response = _upload(client, "big.bin", b"0123456789")

    assert response.status_code == 413
    assert client.get("/files", headers=ALICE).json() == []


def test_health_reports_ready(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["service_ready"] is True


def test_content_disposition_escapes_non_ascii_names() -> None:
    header = content_disposition('résumé "final".pdf')

    assert header.startswith('attachment; filename="r_sum_ _final_.pdf"')
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9%20%22final%22.pdf" in header
