"""Location library storage."""

from typing import Any

from .library import create_owned, delete_owned, get_owned, list_owned, update_owned

COLLECTION = "locations"

_DEFAULTS: dict[str, Any] = {
    "name": "",
    "description": "",
    "notable_features": [],
    "connected_locations": [],
    "tags": [],
}


def list_locations(user_id: str, tag: str | None = None) -> list[dict[str, Any]]:
    return list_owned(COLLECTION, user_id, tag)


def get_location(location_id: str, user_id: str) -> dict[str, Any] | None:
    return get_owned(COLLECTION, location_id, user_id)


def create_location(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    if not (fields.get("name") or "").strip():
        raise ValueError("Name is required")
    return create_owned(COLLECTION, user_id, _DEFAULTS, fields)


def update_location(
    location_id: str, user_id: str, fields: dict[str, Any]
) -> dict[str, Any] | None:
    return update_owned(COLLECTION, location_id, user_id, set(_DEFAULTS), fields)


def delete_location(location_id: str, user_id: str) -> bool:
    return delete_owned(COLLECTION, location_id, user_id)
