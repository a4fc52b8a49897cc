"""SQL repository tests over a SQLite catalog."""

from __future__ import annotations

from datetime import UTC

from packages.filevault_shared.ids import generate_ulid_str, is_ulid_str
from services.state.file_authority.data import SqlFileRepository

_DIGEST_A = "a" * 64
_DIGEST_B = "b" * 64


def _insert(repo: SqlFileRepository, *, owner_id: str, name: str, digest: str):
    return repo.insert_file(
        owner_id=owner_id,
        display_name=name,
        content_type="text/plain",
        size_bytes=3,
        digest_hex=digest,
    )


def test_insert_and_get_roundtrip(sql_repository: SqlFileRepository) -> None:
    """Inserted rows read back identically with a ULID id and UTC time."""
    created = _insert(sql_repository, owner_id="alice", name="a.txt", digest=_DIGEST_A)

    loaded = sql_repository.get_file(file_id=created.id)

    assert is_ulid_str(created.id)
    assert loaded is not None
    assert loaded.created_at.tzinfo == UTC
    assert loaded.model_dump(exclude={"created_at"}) == created.model_dump(
        exclude={"created_at"}
    )
    assert sql_repository.get_file(file_id=generate_ulid_str()) is None


def test_list_is_owner_scoped_newest_first(sql_repository: SqlFileRepository) -> None:
    first = _insert(sql_repository, owner_id="alice", name="1", digest=_DIGEST_A)
    _insert(sql_repository, owner_id="bob", name="2", digest=_DIGEST_A)
    third = _insert(sql_repository, owner_id="alice", name="3", digest=_DIGEST_B)

    rows = sql_repository.list_files_by_owner(owner_id="alice")

    assert [row.id for row in rows] == [third.id, first.id]
    assert sql_repository.list_files_by_owner(owner_id="carol") == []


def test_count_and_owner_scoped_delete(sql_repository: SqlFileRepository) -> None:
    """Delete only matches the owner's row; counts follow deletes."""
    alice = _insert(sql_repository, owner_id="alice", name="a", digest=_DIGEST_A)
    _insert(sql_repository, owner_id="bob", name="b", digest=_DIGEST_A)

    assert sql_repository.count_by_digest(digest_hex=_DIGEST_A) == 2
    assert sql_repository.delete_file(file_id=alice.id, owner_id="bob") is False
    assert sql_repository.delete_file(file_id=alice.id, owner_id="alice") is True
    assert sql_repository.delete_file(file_id=alice.id, owner_id="alice") is False
    assert sql_repository.count_by_digest(digest_hex=_DIGEST_A) == 1
    assert sql_repository.count_by_digest(digest_hex=_DIGEST_B) == 0


def test_increment_download_count_is_owner_scoped(
    sql_repository: SqlFileRepository,
) -> None:
    created = _insert(sql_repository, owner_id="alice", name="a", digest=_DIGEST_A)

    sql_repository.increment_download_count(file_id=created.id, owner_id="alice")
    sql_repository.increment_download_count(file_id=created.id, owner_id="alice")
    sql_repository.increment_download_count(file_id=created.id, owner_id="bob")

    loaded = sql_repository.get_file(file_id=created.id)
    assert loaded is not None
    assert loaded.download_count == 2


def test_ping(sql_repository: SqlFileRepository) -> None:
    assert sql_repository.ping() is True
