"""Character library CRUD plus attribute/tag parsing helpers."""

from fastapi import APIRouter, Depends, HTTPException

from story_engine import parsers, storage
from story_engine.auth import require_auth
from story_engine.database import FallbackStrategy
from story_engine.services import get_database

from .models import CreateCharacter, ParseAttributesBody, UpdateCharacter

router = APIRouter()


def _cache_prefix(user_id: str) -> str:
    return f"characters:{user_id}"


@router.get("/characters")
async def list_characters(tag: str | None = None, user: dict = Depends(require_auth)):
    """List the user's characters, newest first. Served from cache if storage fails."""
    db = get_database()

    async def op():
        return storage.list_characters(user["id"], tag)

    result = await db.execute(
        "storage", op,
        cache_key=f"{_cache_prefix(user['id'])}:{tag or ''}",
        strategy=FallbackStrategy.CACHE_THEN_ERROR,
    )
    if not result.success:
        raise HTTPException(503, "Characters are temporarily unavailable")
    return result.data


@router.post("/characters", status_code=201)
async def create_character(body: CreateCharacter, user: dict = Depends(require_auth)):
    fields = body.model_dump()
    fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    try:
        character = storage.create_character(user["id"], fields)
    except ValueError as e:
        raise HTTPException(400, str(e))
    get_database().invalidate(_cache_prefix(user["id"]))
    return character


@router.get("/characters/{character_id}")
async def get_character(character_id: str, user: dict = Depends(require_auth)):
    character = storage.get_character(character_id, user["id"])
    if not character:
        raise HTTPException(404, "Character not found")
    return character


@router.patch("/characters/{character_id}")
async def update_character(
    character_id: str, body: UpdateCharacter, user: dict = Depends(require_auth)
):
    fields = body.model_dump(exclude_none=True)
    if "tags" in fields:
        fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    try:
        updated = storage.update_character(character_id, user["id"], fields)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not updated:
        raise HTTPException(404, "Character not found")
    get_database().invalidate(_cache_prefix(user["id"]))
    return updated


@router.delete("/characters/{character_id}")
async def delete_character(character_id: str, user: dict = Depends(require_auth)):
    if not storage.delete_character(character_id, user["id"]):
        raise HTTPException(404, "Character not found")
    get_database().invalidate(_cache_prefix(user["id"]))
    return {"ok": True}


@router.post("/characters/parse-attributes")
async def parse_attributes(body: ParseAttributesBody, user: dict = Depends(require_auth)):
    """Turn free text into structured attributes for the character editor."""
    attributes = parsers.parse_attribute_text(body.text, body.field_type)
    return {"attributes": attributes, "text": parsers.attribute_to_text(attributes)}
