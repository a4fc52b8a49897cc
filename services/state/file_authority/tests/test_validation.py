"""Tests for File Authority request validation models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from packages.filevault_shared.ids import generate_ulid_str
from services.state.file_authority.validation import (
    FileRefRequest,
    UploadFileRequest,
    normalize_display_name,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("report.pdf", "report.pdf"),
        ("/var/tmp/report.pdf", "report.pdf"),
        ("..\\..\\Windows\\win.ini", "win.ini"),
        ("  spaced name.txt  ", "spaced name.txt"),
        ("bad\r\nname.txt", "badname.txt"),
    ],
)
def test_display_name_is_reduced_to_printable_base_name(
    raw: str, expected: str
) -> None:
    assert normalize_display_name(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "dir/", "..", "a/.", "x" * 256])
def test_display_name_rejects_unusable_names(raw: str) -> None:
    with pytest.raises(ValueError):
        normalize_display_name(raw)


def test_upload_request_strips_owner() -> None:
    request = UploadFileRequest.model_validate(
        {"owner_id": "  alice ", "display_name": "a.txt"}
    )

    assert request.owner_id == "alice"


def test_file_ref_normalizes_ulid_case() -> None:
    file_id = generate_ulid_str()

    request = FileRefRequest.model_validate(
        {"owner_id": "alice", "file_id": file_id.lower()}
    )

    assert request.file_id == file_id


@pytest.mark.parametrize("file_id", ["", "123", "U" * 26, "not-a-ulid-at-all-nope-xx"])
def test_file_ref_rejects_non_ulids(file_id: str) -> None:
    with pytest.raises(ValidationError):
        FileRefRequest.model_validate({"owner_id": "alice", "file_id": file_id})


def test_extra_fields_are_forbidden() -> None:
    with pytest.raises(ValidationError):
        UploadFileRequest.model_validate(
            {"owner_id": "alice", "display_name": "a", "size": 3}
        )
