# tests/test_kv_store.py

from __future__ import annotations

from pathlib import Path

import pytest

from study_tracker.core.errors import StorageError
from study_tracker.storage.kv_store import JsonFileStore, SQLiteKeyValueStore


@pytest.fixture(params=["sqlite", "json"])
def kv(request, tmp_path: Path):
    if request.param == "sqlite":
        return SQLiteKeyValueStore(tmp_path / "store.sqlite3")
    return JsonFileStore(tmp_path / "store.json")


def test_get_set_clear(kv) -> None:
    assert kv.get("@tasks_list") is None

    kv.set("@tasks_list", "[]")
    kv.set("@user_profile", '{"name": "Sam"}')
    kv.set("@tasks_list", '[{"id": "1"}]')

    assert kv.get("@tasks_list") == '[{"id": "1"}]'
    assert kv.get("@user_profile") == '{"name": "Sam"}'

    kv.clear()
    assert kv.get("@tasks_list") is None
    assert kv.get("@user_profile") is None
    # clearing an empty store is fine
    kv.clear()


def test_sqlite_store_survives_reopen(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "store.sqlite3"
    SQLiteKeyValueStore(db).set("k", "v")
    assert SQLiteKeyValueStore(db).get("k") == "v"


def test_json_store_corrupt_document(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{broken", "utf-8")
    store = JsonFileStore(path)

    with pytest.raises(StorageError):
        store.get("k")

    path.write_text("[1, 2]", "utf-8")
    with pytest.raises(StorageError):
        store.get("k")


def test_json_store_write_failure(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = JsonFileStore(path)
    # a directory where the temp file should go makes the write fail
    (tmp_path / "store.tmp").mkdir()

    with pytest.raises(StorageError):
        store.set("k", "v")
    assert not path.exists()
