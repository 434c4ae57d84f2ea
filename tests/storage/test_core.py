"""Tests for storage initialization and JSON helpers."""

from pathlib import Path

import pytest
from filelock import FileLock, Timeout

from story_engine import storage
from story_engine.storage import core


def test_init_creates_tree():
    root = storage.data_dir()
    assert storage.adventures_dir() == root / "adventures"
    assert storage.adventures_dir().is_dir()
    assert storage.vectors_dir().is_dir()
    assert storage.avatars_dir().is_dir()


def test_data_dir_requires_init(monkeypatch):
    monkeypatch.setattr(core, "_data_dir", None)
    with pytest.raises(AssertionError):
        storage.data_dir()


def test_read_json_default(tmp_path: Path):
    assert core.read_json(tmp_path / "missing.json", []) == []


def test_write_then_read_json(tmp_path: Path):
    path = tmp_path / "nested" / "thing.json"
    core.write_json(path, {"a": 1})
    assert core.read_json(path, None) == {"a": 1}


def test_new_id_unique_hex():
    a, b = storage.new_id(), storage.new_id()
    assert a != b
    assert a.isalnum() and len(a) == 32


def test_write_json_leaves_no_temp_file(tmp_path: Path):
    path = tmp_path / "thing.json"
    core.write_json(path, [1])
    core.write_json(path, [1, 2])
    assert core.read_json(path, None) == [1, 2]
    assert [p.name for p in tmp_path.iterdir()] == ["thing.json"]


def test_write_lock_is_reentrant_and_shared_across_processes():
    lock_path = storage.data_dir() / core.LOCK_FILENAME
    with core.write_lock:
        with core.write_lock:
            # A second handle on the lock file is what another process would hold
            with pytest.raises(Timeout):
                FileLock(str(lock_path)).acquire(timeout=0)
    other = FileLock(str(lock_path))
    other.acquire(timeout=0)
    other.release()
