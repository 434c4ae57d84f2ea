"""Per-adventure character snapshots and their accumulated state updates.

When an adventure starts, the library character is copied so later edits to
the library never rewrite a running story. Updates extracted from the story
are recorded under `state_updates[field]`, the newest value per field.
"""

import copy
from pathlib import Path
from typing import Any

from .core import NotFoundError, adventures_dir, new_id, now_iso, read_json, write_lock, write_json

# Bookkeeping keys that state updates never overwrite
_IDENTITY_FIELDS = frozenset({"id", "adventure_id", "original_character_id", "created_at", "state_updates"})

_SNAPSHOT_FIELDS = (
    "name", "age", "gender", "appearance", "personality",
    "scents_aromas", "background", "avatar_url", "tags",
)


def _characters_path(adventure_id: str) -> Path:
    return adventures_dir() / adventure_id / "characters.json"


def get_adventure_characters(adventure_id: str) -> list[dict[str, Any]]:
    """Load adventure characters. Returns [] if none exist."""
    return read_json(_characters_path(adventure_id), [])


def _save(adventure_id: str, characters: list[dict[str, Any]]) -> None:
    write_json(_characters_path(adventure_id), characters)


def get_adventure_character(adventure_id: str, character_id: str) -> dict[str, Any] | None:
    for char in get_adventure_characters(adventure_id):
        if char["id"] == character_id:
            return char
    return None


def create_adventure_character(adventure_id: str, character: dict[str, Any]) -> dict[str, Any]:
    """Snapshot a library character into the adventure."""
    snapshot = {field: copy.deepcopy(character.get(field)) for field in _SNAPSHOT_FIELDS}
    snapshot.update({
        "id": new_id(),
        "adventure_id": adventure_id,
        "original_character_id": character["id"],
        "state_updates": {},
        "created_at": now_iso(),
    })
    with write_lock:
        characters = get_adventure_characters(adventure_id)
        characters.append(snapshot)
        _save(adventure_id, characters)
    return snapshot


def update_character_state(
    adventure_id: str,
    character_id: str,
    field: str,
    value: Any,
    context: str = "",
) -> dict[str, Any]:
    """Record the newest value for `field`. Raises NotFoundError if missing."""
    with write_lock:
        characters = get_adventure_characters(adventure_id)
        for char in characters:
            if char["id"] == character_id:
                char.setdefault("state_updates", {})[field] = {
                    "field": field,
                    "value": value,
                    "timestamp": now_iso(),
                    "context": context,
                }
                _save(adventure_id, characters)
                return char
    raise NotFoundError(f"Adventure character {character_id} not found")


def current_state(character: dict[str, Any]) -> dict[str, Any]:
    """Return the snapshot with state updates applied.

    Dotted fields ("appearance.hair") land inside the named dict; bare fields
    overwrite top-level values.
    """
    state = {k: copy.deepcopy(v) for k, v in character.items() if k != "state_updates"}
    for field, update in character.get("state_updates", {}).items():
        if field in _IDENTITY_FIELDS:
            continue
        group, _, key = field.partition(".")
        if key and isinstance(state.get(group), dict):
            state[group][key] = update["value"]
        else:
            state[field] = update["value"]
    return state
