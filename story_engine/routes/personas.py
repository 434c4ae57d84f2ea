"""Player persona CRUD."""

from fastapi import APIRouter, Depends, HTTPException

from story_engine import parsers, storage
from story_engine.auth import require_auth

from .models import CreatePersona, UpdatePersona

router = APIRouter()


@router.get("/personas")
async def list_personas(tag: str | None = None, user: dict = Depends(require_auth)):
    return storage.list_personas(user["id"], tag)


@router.post("/personas", status_code=201)
async def create_persona(body: CreatePersona, user: dict = Depends(require_auth)):
    fields = body.model_dump()
    fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    try:
        return storage.create_persona(user["id"], fields)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("/personas/{persona_id}")
async def get_persona(persona_id: str, user: dict = Depends(require_auth)):
    persona = storage.get_persona(persona_id, user["id"])
    if not persona:
        raise HTTPException(404, "Persona not found")
    return persona


@router.patch("/personas/{persona_id}")
async def update_persona(persona_id: str, body: UpdatePersona, user: dict = Depends(require_auth)):
    fields = body.model_dump(exclude_none=True)
    if "tags" in fields:
        fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    updated = storage.update_persona(persona_id, user["id"], fields)
    if not updated:
        raise HTTPException(404, "Persona not found")
    return updated


@router.delete("/personas/{persona_id}")
async def delete_persona(persona_id: str, user: dict = Depends(require_auth)):
    if not storage.delete_persona(persona_id, user["id"]):
        raise HTTPException(404, "Persona not found")
    return {"ok": True}
