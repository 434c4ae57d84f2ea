"""Storage initialization, path helpers, and JSON read/write utilities."""

import json
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from filelock import FileLock

_data_dir: Path | None = None

LOCK_FILENAME = ".storage.lock"


class StorageLock:
    """Re-entrant lock for read-modify-write cycles on the shared JSON files.

    Threads in this process are serialized by an RLock; other processes using
    the same data dir (the server and a `--worker` process) by a lock file
    taken on the outermost acquire.
    """

    def __init__(self) -> None:
        self._thread_lock = threading.RLock()
        self._file_lock: FileLock | None = None
        self._depth = 0

    def __enter__(self) -> "StorageLock":
        self._thread_lock.acquire()
        try:
            if self._depth == 0 and _data_dir is not None:
                self._file_lock = FileLock(str(_data_dir / LOCK_FILENAME))
                self._file_lock.acquire()
        except BaseException:
            self._thread_lock.release()
            raise
        self._depth += 1
        return self

    def __exit__(self, *exc: object) -> None:
        self._depth -= 1
        try:
            if self._depth == 0 and self._file_lock is not None:
                self._file_lock.release()
                self._file_lock = None
        finally:
            self._thread_lock.release()


write_lock = StorageLock()


class NotFoundError(LookupError):
    """Raised when a record is missing or not owned by the caller."""


def init_storage(data_dir: Path) -> None:
    global _data_dir
    from . import vectors as _vec_mod

    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    adventures_dir().mkdir(exist_ok=True)
    vectors_dir().mkdir(exist_ok=True)
    avatars_dir().mkdir(exist_ok=True)
    _vec_mod.invalidate_cache()


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def adventures_dir() -> Path:
    return data_dir() / "adventures"


def vectors_dir() -> Path:
    return data_dir() / "vectors"


def avatars_dir() -> Path:
    return data_dir() / "avatars"


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def read_json(path: Path, default: Any) -> Any:
    """Load a JSON file, returning `default` if it does not exist."""
    if not path.is_file():
        return default
    return json.loads(path.read_text())


def write_json(path: Path, value: Any) -> None:
    """Write through a temp file so readers never see a partial document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(value, indent=2))
    os.replace(tmp, path)
