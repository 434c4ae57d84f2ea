"""World setting library CRUD."""

from fastapi import APIRouter, Depends, HTTPException

from story_engine import parsers, storage
from story_engine.auth import require_auth

from .models import CreateSetting, UpdateSetting

router = APIRouter()


@router.get("/settings")
async def list_settings(tag: str | None = None, user: dict = Depends(require_auth)):
    return storage.list_settings(user["id"], tag)


@router.post("/settings", status_code=201)
async def create_setting(body: CreateSetting, user: dict = Depends(require_auth)):
    fields = body.model_dump()
    fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    try:
        return storage.create_setting(user["id"], fields)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("/settings/{setting_id}")
async def get_setting(setting_id: str, user: dict = Depends(require_auth)):
    setting = storage.get_setting(setting_id, user["id"])
    if not setting:
        raise HTTPException(404, "Setting not found")
    return setting


@router.patch("/settings/{setting_id}")
async def update_setting(setting_id: str, body: UpdateSetting, user: dict = Depends(require_auth)):
    fields = body.model_dump(exclude_none=True)
    if "tags" in fields:
        fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    updated = storage.update_setting(setting_id, user["id"], fields)
    if not updated:
        raise HTTPException(404, "Setting not found")
    return updated


@router.delete("/settings/{setting_id}")
async def delete_setting(setting_id: str, user: dict = Depends(require_auth)):
    if not storage.delete_setting(setting_id, user["id"]):
        raise HTTPException(404, "Setting not found")
    return {"ok": True}
