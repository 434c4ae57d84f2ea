"""Character library storage (user-authored characters)."""

from typing import Any

from .library import create_owned, delete_owned, get_owned, list_owned, update_owned

COLLECTION = "characters"

GENDERS = ("Male", "Female", "Other", "Unknown")
NAME_MAX_LENGTH = 120
AGE_RANGE = (1, 9999)

_DEFAULTS: dict[str, Any] = {
    "name": "",
    "age": None,
    "gender": None,
    "appearance": {},
    "personality": {},
    "scents_aromas": {},
    "background": "",
    "avatar_url": None,
    "tags": [],
}


def validate_character(fields: dict[str, Any], partial: bool = False) -> None:
    """Raise ValueError if name, age or gender are out of bounds."""
    if "name" in fields or not partial:
        name = (fields.get("name") or "").strip()
        if not name:
            raise ValueError("Name is required")
        if len(name) > NAME_MAX_LENGTH:
            raise ValueError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    age = fields.get("age")
    if age is not None:
        if not isinstance(age, int) or not AGE_RANGE[0] <= age <= AGE_RANGE[1]:
            raise ValueError(f"Age must be between {AGE_RANGE[0]} and {AGE_RANGE[1]}")
    gender = fields.get("gender")
    if gender is not None and gender not in GENDERS:
        raise ValueError(f"Gender must be one of {', '.join(GENDERS)}")


def list_characters(user_id: str, tag: str | None = None) -> list[dict[str, Any]]:
    return list_owned(COLLECTION, user_id, tag)


def get_character(character_id: str, user_id: str) -> dict[str, Any] | None:
    return get_owned(COLLECTION, character_id, user_id)


def create_character(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    validate_character(fields)
    fields = dict(fields, name=fields["name"].strip())
    return create_owned(COLLECTION, user_id, _DEFAULTS, fields)


def update_character(
    character_id: str, user_id: str, fields: dict[str, Any]
) -> dict[str, Any] | None:
    validate_character(fields, partial=True)
    return update_owned(COLLECTION, character_id, user_id, set(_DEFAULTS), fields)


def delete_character(character_id: str, user_id: str) -> bool:
    return delete_owned(COLLECTION, character_id, user_id)
