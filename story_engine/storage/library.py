"""Shared helpers for user-owned library collections.

Characters, locations, settings and personas are each stored as a flat JSON
list in `data/<collection>.json`. Every record carries `user_id`; reads and
writes for another user's record behave as if the record did not exist.
"""

import copy
from pathlib import Path
from typing import Any

from .core import data_dir, new_id, now_iso, read_json, write_lock, write_json

_PROTECTED = {"id", "user_id", "created_at", "updated_at"}


def _collection_path(collection: str) -> Path:
    return data_dir() / f"{collection}.json"


def load_all(collection: str) -> list[dict[str, Any]]:
    return read_json(_collection_path(collection), [])


def save_all(collection: str, records: list[dict[str, Any]]) -> None:
    write_json(_collection_path(collection), records)


def list_owned(
    collection: str, user_id: str, tag: str | None = None
) -> list[dict[str, Any]]:
    """Return the user's records, newest first, optionally filtered by tag."""
    records = [r for r in load_all(collection) if r["user_id"] == user_id]
    if tag:
        wanted = tag.lower()
        records = [r for r in records if wanted in (t.lower() for t in r.get("tags", []))]
    records.sort(key=lambda r: r["created_at"], reverse=True)
    return records


def get_owned(collection: str, record_id: str, user_id: str) -> dict[str, Any] | None:
    for record in load_all(collection):
        if record["id"] == record_id and record["user_id"] == user_id:
            return record
    return None


def create_owned(
    collection: str, user_id: str, defaults: dict[str, Any], fields: dict[str, Any]
) -> dict[str, Any]:
    now = now_iso()
    record = {"id": new_id(), "user_id": user_id}
    record.update(copy.deepcopy(defaults))
    record.update({k: v for k, v in fields.items() if k in defaults})
    record["created_at"] = now
    record["updated_at"] = now
    with write_lock:
        records = load_all(collection)
        records.append(record)
        save_all(collection, records)
    return record


def update_owned(
    collection: str,
    record_id: str,
    user_id: str,
    allowed: set[str],
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    with write_lock:
        records = load_all(collection)
        for record in records:
            if record["id"] == record_id and record["user_id"] == user_id:
                for key, value in fields.items():
                    if key in allowed and key not in _PROTECTED:
                        record[key] = value
                record["updated_at"] = now_iso()
                save_all(collection, records)
                return record
    return None


def delete_owned(collection: str, record_id: str, user_id: str) -> bool:
    with write_lock:
        records = load_all(collection)
        kept = [
            r for r in records
            if not (r["id"] == record_id and r["user_id"] == user_id)
        ]
        if len(kept) == len(records):
            return False
        save_all(collection, kept)
    return True
