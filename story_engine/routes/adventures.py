"""Adventure CRUD, messages, character state, search and the chat turn."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from story_engine import config, storage
from story_engine.auth import require_auth
from story_engine.llm import LLMError
from story_engine.pipeline import run_chat_turn, system_prompt_for
from story_engine.services import get_client, get_database, get_embedding_service
from story_engine.similarity import keyword_similarity, truncate_content

from .models import (
    ChatBody,
    CreateAdventure,
    SystemPromptBody,
    UpdateAdventure,
    UpdateCharacterState,
    UpdateMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _owned_adventure(adventure_id: str, user_id: str) -> dict:
    adventure = storage.get_adventure(adventure_id, user_id)
    if not adventure:
        raise HTTPException(404, "Adventure not found")
    return adventure


@router.get("/adventures")
async def list_adventures(user: dict = Depends(require_auth)):
    """List the user's adventures, newest first."""
    return storage.list_adventures(user["id"])


@router.post("/adventures", status_code=201)
async def create_adventure(body: CreateAdventure, user: dict = Depends(require_auth)):
    """Start an adventure from a library character (plus optional location,
    setting and persona, which must also belong to the user)."""
    character = storage.get_character(body.character_id, user["id"])
    if not character:
        raise HTTPException(404, "Character not found")
    lookups = (
        (body.location_id, storage.get_location, "Location"),
        (body.setting_id, storage.get_setting, "Setting"),
        (body.persona_id, storage.get_persona, "Persona"),
    )
    for ref_id, getter, label in lookups:
        if ref_id and not getter(ref_id, user["id"]):
            raise HTTPException(404, f"{label} not found")

    try:
        adventure = storage.create_adventure(
            user_id=user["id"],
            title=body.title,
            character=character,
            location_id=body.location_id,
            setting_id=body.setting_id,
            persona_id=body.persona_id,
            user_name=body.user_name,
            adventure_type=body.adventure_type,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    prompt = system_prompt_for(adventure, user["id"])
    storage.update_system_prompt(adventure["id"], user["id"], prompt)
    return storage.get_adventure(adventure["id"], user["id"])


@router.get("/adventures/{adventure_id}")
async def get_adventure(adventure_id: str, user: dict = Depends(require_auth)):
    return _owned_adventure(adventure_id, user["id"])


@router.patch("/adventures/{adventure_id}")
async def update_adventure(
    adventure_id: str, body: UpdateAdventure, user: dict = Depends(require_auth)
):
    """Update adventure fields (title, user_name, persona_id)."""
    fields = body.model_dump(exclude_none=True)
    if fields.get("persona_id") and not storage.get_persona(fields["persona_id"], user["id"]):
        raise HTTPException(404, "Persona not found")
    updated = storage.update_adventure(adventure_id, user["id"], fields)
    if not updated:
        raise HTTPException(404, "Adventure not found")
    return updated


@router.delete("/adventures/{adventure_id}")
async def delete_adventure(adventure_id: str, user: dict = Depends(require_auth)):
    """Delete an adventure and all its data."""
    if not storage.delete_adventure(adventure_id, user["id"]):
        raise HTTPException(404, "Adventure not found")
    return {"ok": True}


@router.put("/adventures/{adventure_id}/system-prompt")
async def update_system_prompt(
    adventure_id: str, body: SystemPromptBody, user: dict = Depends(require_auth)
):
    updated = storage.update_system_prompt(adventure_id, user["id"], body.system_prompt)
    if not updated:
        raise HTTPException(404, "Adventure not found")
    return updated


# ── Messages ─────────────────────────────────────────────


@router.get("/adventures/{adventure_id}/messages")
async def get_messages(adventure_id: str, limit: int = 50, user: dict = Depends(require_auth)):
    """Chat history, oldest first (the latest `limit` messages)."""
    _owned_adventure(adventure_id, user["id"])
    return storage.get_messages(adventure_id, user["id"], limit=max(1, min(limit, 500)))


@router.patch("/adventures/{adventure_id}/messages/{message_id}")
async def update_message(
    adventure_id: str, message_id: str, body: UpdateMessage, user: dict = Depends(require_auth)
):
    _owned_adventure(adventure_id, user["id"])
    try:
        return storage.update_message(message_id, adventure_id, user["id"], body.content)
    except storage.NotFoundError:
        raise HTTPException(404, "Message not found")


@router.delete("/adventures/{adventure_id}/messages/{message_id}")
async def delete_message(adventure_id: str, message_id: str, user: dict = Depends(require_auth)):
    _owned_adventure(adventure_id, user["id"])
    try:
        storage.delete_message(message_id, adventure_id, user["id"])
    except storage.NotFoundError:
        raise HTTPException(404, "Message not found")
    return {"ok": True}


@router.get("/adventures/{adventure_id}/search")
async def search_messages(adventure_id: str, q: str, limit: int = 10, user: dict = Depends(require_auth)):
    """Keyword search over the adventure's messages."""
    _owned_adventure(adventure_id, user["id"])
    hits = []
    for message in storage.get_messages(adventure_id, user["id"], limit=0):
        score = keyword_similarity(q, message["content"])
        if score > 0:
            hits.append({
                "message_id": message["id"],
                "role": message["role"],
                "snippet": truncate_content(message["content"]),
                "score": score,
                "created_at": message["created_at"],
            })
    hits.sort(key=lambda h: h["score"], reverse=True)
    return hits[:limit]


# ── Characters in the adventure ──────────────────────────


@router.get("/adventures/{adventure_id}/characters")
async def get_adventure_characters(adventure_id: str, user: dict = Depends(require_auth)):
    """Adventure characters with their current (state-applied) view."""
    adventure = _owned_adventure(adventure_id, user["id"])
    return [
        {**char, "current": storage.current_state(char)}
        for char in adventure["characters"]
    ]


@router.patch("/adventures/{adventure_id}/characters/{character_id}/state")
async def update_character_state(
    adventure_id: str,
    character_id: str,
    body: UpdateCharacterState,
    user: dict = Depends(require_auth),
):
    """Manually record a state update (e.g. a correction from the player)."""
    _owned_adventure(adventure_id, user["id"])
    try:
        return storage.update_character_state(
            adventure_id, character_id, body.field, body.value, body.context,
        )
    except storage.NotFoundError:
        raise HTTPException(404, "Character not found")


@router.get("/adventures/{adventure_id}/characters/{character_id}/similar")
async def similar_traits(
    adventure_id: str,
    character_id: str,
    q: str,
    limit: int = 10,
    threshold: float | None = None,
    trait_type: str | None = None,
    user: dict = Depends(require_auth),
):
    """Semantic search over a character's embedded traits."""
    if not config.embedding_features().semantic_search:
        raise HTTPException(404, "Semantic search is disabled")
    _owned_adventure(adventure_id, user["id"])
    if not storage.get_adventure_character(adventure_id, character_id):
        raise HTTPException(404, "Character not found")
    try:
        return await get_embedding_service().find_similar_traits(
            q, character_id, limit=limit, threshold=threshold, trait_type=trait_type,
        )
    except LLMError as e:
        raise HTTPException(502, str(e))


# ── Chat ─────────────────────────────────────────────────


@router.post("/adventures/{adventure_id}/chat")
async def adventure_chat(adventure_id: str, body: ChatBody, user: dict = Depends(require_auth)):
    """Send a player message and get the character's reply."""
    if not config.ai_enabled():
        raise HTTPException(503, "AI features are disabled")
    adventure = _owned_adventure(adventure_id, user["id"])

    try:
        return await run_chat_turn(
            adventure=adventure,
            user_id=user["id"],
            content=body.message,
            client=get_client(),
            embeddings=get_embedding_service(),
            fallbacks=get_database().fallbacks,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    except LLMError as e:
        logger.warning("chat turn failed for %s: %s", adventure_id, e)
        raise HTTPException(502, str(e))
