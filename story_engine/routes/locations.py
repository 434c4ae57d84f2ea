"""Location library CRUD."""

from fastapi import APIRouter, Depends, HTTPException

from story_engine import parsers, storage
from story_engine.auth import require_auth

from .models import CreateLocation, UpdateLocation

router = APIRouter()


@router.get("/locations")
async def list_locations(tag: str | None = None, user: dict = Depends(require_auth)):
    return storage.list_locations(user["id"], tag)


@router.post("/locations", status_code=201)
async def create_location(body: CreateLocation, user: dict = Depends(require_auth)):
    fields = body.model_dump()
    fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    try:
        return storage.create_location(user["id"], fields)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("/locations/{location_id}")
async def get_location(location_id: str, user: dict = Depends(require_auth)):
    location = storage.get_location(location_id, user["id"])
    if not location:
        raise HTTPException(404, "Location not found")
    return location


@router.patch("/locations/{location_id}")
async def update_location(location_id: str, body: UpdateLocation, user: dict = Depends(require_auth)):
    fields = body.model_dump(exclude_none=True)
    if "tags" in fields:
        fields["tags"] = parsers.parse_tags_from_string(",".join(fields["tags"]))
    updated = storage.update_location(location_id, user["id"], fields)
    if not updated:
        raise HTTPException(404, "Location not found")
    return updated


@router.delete("/locations/{location_id}")
async def delete_location(location_id: str, user: dict = Depends(require_auth)):
    if not storage.delete_location(location_id, user["id"]):
        raise HTTPException(404, "Location not found")
    return {"ok": True}
