"""World setting storage (the era/world an adventure takes place in)."""

from typing import Any

from .library import create_owned, delete_owned, get_owned, list_owned, update_owned

COLLECTION = "settings"

_DEFAULTS: dict[str, Any] = {
    "name": "",
    "description": "",
    "world_type": "",
    "history": "",
    "tags": [],
}


def list_settings(user_id: str, tag: str | None = None) -> list[dict[str, Any]]:
    return list_owned(COLLECTION, user_id, tag)


def get_setting(setting_id: str, user_id: str) -> dict[str, Any] | None:
    return get_owned(COLLECTION, setting_id, user_id)


def create_setting(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    if not (fields.get("name") or "").strip():
        raise ValueError("Name is required")
    return create_owned(COLLECTION, user_id, _DEFAULTS, fields)


def update_setting(
    setting_id: str, user_id: str, fields: dict[str, Any]
) -> dict[str, Any] | None:
    return update_owned(COLLECTION, setting_id, user_id, set(_DEFAULTS), fields)


def delete_setting(setting_id: str, user_id: str) -> bool:
    return delete_owned(COLLECTION, setting_id, user_id)
