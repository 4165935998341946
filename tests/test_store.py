import json
import threading

import pytest

from database import TASKS, USERS, JsonFileStore, MemoryStore


@pytest.fixture
def file_store(tmp_path):
    return JsonFileStore(str(tmp_path))


def test_load_missing_collection_initializes_file(file_store, tmp_path):
    """Loading a collection that does not exist creates it empty."""
    assert file_store.load(USERS) == []
    assert json.loads((tmp_path / "users.json").read_text()) == []


def test_empty_file_reads_as_empty(file_store, tmp_path):
    (tmp_path / "tasks.json").write_text("")
    assert file_store.load(TASKS) == []


def test_save_then_load(file_store, tmp_path):
    records = [{"id": 1, "email": "a@x.com", "title": "t"}]
    file_store.save(TASKS, records)
    assert file_store.load(TASKS) == records
    # Pretty-printed, and no temp files left behind
    assert (tmp_path / "tasks.json").read_text().startswith("[\n  {")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["tasks.json"]


def test_transaction_discards_changes_on_error(file_store):
    file_store.save(TASKS, [{"id": 1}])
    with pytest.raises(RuntimeError):
        with file_store.transaction(TASKS) as tasks:
            tasks.append({"id": 2})
            raise RuntimeError("boom")
    assert file_store.load(TASKS) == [{"id": 1}]


@pytest.mark.parametrize("store_factory", ["file", "memory"])
def test_concurrent_transactions_do_not_lose_writes(store_factory, tmp_path):
    """Overlapping read-modify-write cycles on one collection are serialized."""
    store = JsonFileStore(str(tmp_path)) if store_factory == "file" else MemoryStore()

    def append_many(worker):
        for i in range(20):
            with store.transaction(TASKS) as tasks:
                tasks.append({"id": worker * 100 + i})

    threads = [threading.Thread(target=append_many, args=(w,)) for w in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.load(TASKS)) == 100


def test_memory_store_returns_copies():
    store = MemoryStore()
    store.save(USERS, [{"email": "a@x.com"}])
    loaded = store.load(USERS)
    loaded[0]["email"] = "changed"
    assert store.load(USERS) == [{"email": "a@x.com"}]
