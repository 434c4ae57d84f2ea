"""Persona storage (the player's own in-story identity)."""

from typing import Any

from .library import create_owned, delete_owned, get_owned, list_owned, update_owned

COLLECTION = "personas"

_DEFAULTS: dict[str, Any] = {
    "name": "",
    "description": "",
    "personality": "",
    "avatar_url": None,
    "tags": [],
}


def list_personas(user_id: str, tag: str | None = None) -> list[dict[str, Any]]:
    return list_owned(COLLECTION, user_id, tag)


def get_persona(persona_id: str, user_id: str) -> dict[str, Any] | None:
    return get_owned(COLLECTION, persona_id, user_id)


def create_persona(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    if not (fields.get("name") or "").strip():
        raise ValueError("Name is required")
    return create_owned(COLLECTION, user_id, _DEFAULTS, fields)


def update_persona(
    persona_id: str, user_id: str, fields: dict[str, Any]
) -> dict[str, Any] | None:
    return update_owned(COLLECTION, persona_id, user_id, set(_DEFAULTS), fields)


def delete_persona(persona_id: str, user_id: str) -> bool:
    return delete_owned(COLLECTION, persona_id, user_id)
