import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Dict, Iterator, List

from fastapi import Depends

from config import Settings, get_settings

logger = logging.getLogger("taskmanager.store")

# Collection names. Each one is a whole JSON array of records.
USERS = "users"
TASKS = "tasks"


class RecordStore:
    """
    Whole-collection persistence: every load reads the entire collection and
    every save rewrites it. There is no indexing and no partial update.

    Read-modify-write cycles must go through `transaction` so that two
    mutations of the same collection never interleave.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def load(self, name: str) -> List[dict]:
        raise NotImplementedError

    def save(self, name: str, records: List[dict]) -> None:
        raise NotImplementedError

    def _lock_for(self, name: str) -> threading.RLock:
        with self._locks_guard:
            if name not in self._locks:
                self._locks[name] = threading.RLock()
            return self._locks[name]

    @contextmanager
    def transaction(self, name: str) -> Iterator[List[dict]]:
        # Changes are only written back if the block exits normally.
        with self._lock_for(name):
            records = self.load(name)
            yield records
            self.save(name, records)


class JsonFileStore(RecordStore):
    def __init__(self, data_dir: str = "."):
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def load(self, name: str) -> List[dict]:
        path = self.path_for(name)
        with self._lock_for(name):
            if not path.exists():
                logger.info(f"Initializing empty collection at {path}")
                self.save(name, [])
                return []
            data = path.read_text(encoding="utf-8")
            return json.loads(data) if data.strip() else []

    def save(self, name: str, records: List[dict]) -> None:
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock_for(name):
            # Write next to the target and swap it in, so readers never see a partial file.
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise


class MemoryStore(RecordStore):
    def __init__(self):
        super().__init__()
        self.collections: Dict[str, List[dict]] = {}

    def load(self, name: str) -> List[dict]:
        with self._lock_for(name):
            records = self.collections.setdefault(name, [])
            # Hand out copies so callers behave the same as with the file store.
            return json.loads(json.dumps(records))

    def save(self, name: str, records: List[dict]) -> None:
        with self._lock_for(name):
            self.collections[name] = json.loads(json.dumps(records))


@lru_cache
def _file_store(data_dir: str) -> JsonFileStore:
    return JsonFileStore(data_dir)


# Dependency returning the process-wide store
def get_store(settings: Annotated[Settings, Depends(get_settings)]) -> RecordStore:
    return _file_store(settings.data_dir)
