"""Adventure CRUD. Each adventure owns a child directory of messages and
adventure characters."""

import shutil
from pathlib import Path
from typing import Any

from .adventure_characters import create_adventure_character, get_adventure_characters
from .core import adventures_dir, new_id, now_iso, read_json, write_lock, write_json
from .vectors import MEMORY_COLLECTION, TRAIT_COLLECTION, delete_vectors_where


def _adventure_path(adventure_id: str) -> Path:
    return adventures_dir() / f"{adventure_id}.json"


def _load(adventure_id: str) -> dict[str, Any] | None:
    # Ids are generated hex strings; anything else cannot name a file of ours.
    if not adventure_id.isalnum():
        return None
    return read_json(_adventure_path(adventure_id), None)


def _save(adventure: dict[str, Any]) -> None:
    write_json(_adventure_path(adventure["id"]), adventure)


def list_adventures(user_id: str) -> list[dict[str, Any]]:
    """Return the user's adventures, newest first, with their character names."""
    results = []
    for path in adventures_dir().glob("*.json"):
        adventure = read_json(path, None)
        if adventure is None or adventure["user_id"] != user_id:
            continue
        adventure["character_names"] = [
            c["name"] for c in get_adventure_characters(adventure["id"])
        ]
        results.append(adventure)
    results.sort(key=lambda a: a["created_at"], reverse=True)
    return results


def get_adventure(adventure_id: str, user_id: str) -> dict[str, Any] | None:
    """Load an adventure with its adventure characters. None if not owned."""
    adventure = _load(adventure_id)
    if adventure is None or adventure["user_id"] != user_id:
        return None
    adventure["characters"] = get_adventure_characters(adventure_id)
    return adventure


def create_adventure(
    user_id: str,
    title: str,
    character: dict[str, Any],
    location_id: str | None = None,
    setting_id: str | None = None,
    persona_id: str | None = None,
    user_name: str = "Player",
    adventure_type: str = "general",
    system_prompt: str = "",
) -> dict[str, Any]:
    """Create an adventure and snapshot `character` as its first participant.

    The caller resolves `character` (and checks ownership) beforehand.
    """
    title = title.strip()
    if not title:
        raise ValueError("Title is required")
    if character["user_id"] != user_id:
        raise ValueError("Character does not belong to this user")

    now = now_iso()
    adventure = {
        "id": new_id(),
        "user_id": user_id,
        "title": title,
        "character_id": character["id"],
        "location_id": location_id,
        "setting_id": setting_id,
        "persona_id": persona_id,
        "user_name": user_name or "Player",
        "adventure_type": adventure_type or "general",
        "system_prompt": system_prompt,
        "created_at": now,
        "updated_at": now,
    }
    _save(adventure)
    (adventures_dir() / adventure["id"]).mkdir(exist_ok=True)
    create_adventure_character(adventure["id"], character)
    return adventure


def update_adventure(
    adventure_id: str, user_id: str, fields: dict[str, Any]
) -> dict[str, Any] | None:
    """Update mutable adventure fields (title, user_name, persona_id)."""
    allowed = {"title", "user_name", "persona_id"}
    with write_lock:
        adventure = _load(adventure_id)
        if adventure is None or adventure["user_id"] != user_id:
            return None
        for key, value in fields.items():
            if key in allowed:
                adventure[key] = value
        adventure["updated_at"] = now_iso()
        _save(adventure)
    return adventure


def update_system_prompt(
    adventure_id: str, user_id: str, system_prompt: str
) -> dict[str, Any] | None:
    with write_lock:
        adventure = _load(adventure_id)
        if adventure is None or adventure["user_id"] != user_id:
            return None
        adventure["system_prompt"] = system_prompt
        adventure["updated_at"] = now_iso()
        _save(adventure)
    return adventure


def touch_adventure(adventure_id: str) -> None:
    """Bump updated_at to now."""
    with write_lock:
        adventure = _load(adventure_id)
        if adventure is None:
            return
        adventure["updated_at"] = now_iso()
        _save(adventure)


def delete_adventure(adventure_id: str, user_id: str) -> bool:
    """Delete an adventure with its messages, characters and their embeddings."""
    with write_lock:
        adventure = _load(adventure_id)
        if adventure is None or adventure["user_id"] != user_id:
            return False
        for char in get_adventure_characters(adventure_id):
            delete_vectors_where(TRAIT_COLLECTION, {"adventure_character_id": char["id"]})
        delete_vectors_where(MEMORY_COLLECTION, {"adventure_id": adventure_id})
        _adventure_path(adventure_id).unlink()
        child_dir = adventures_dir() / adventure_id
        if child_dir.is_dir():
            shutil.rmtree(child_dir)
    return True
