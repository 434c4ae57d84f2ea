"""Avatar image upload."""

import logging
import re
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from story_engine import config, storage
from story_engine.auth import require_auth

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}
_SAFE_FILENAME = re.compile(r"^[a-zA-Z0-9._-]+$")

router = APIRouter()


@router.post("/upload/avatar")
async def upload_avatar(file: UploadFile = File(...), user: dict = Depends(require_auth)):
    """Store an avatar under a random name and return its public URL."""
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(400, "Only JPEG, PNG and WebP images are allowed")
    filename = file.filename or ""
    if not _SAFE_FILENAME.match(filename):
        raise HTTPException(400, "Invalid filename")
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(400, "Invalid file extension")

    limit = config.max_avatar_bytes()
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(413, f"File too large (max {limit // (1024 * 1024)}MB)")
    if not data:
        raise HTTPException(400, "Empty file")

    stored_name = f"{uuid.uuid4()}.{extension}"
    (storage.avatars_dir() / stored_name).write_bytes(data)
    logger.info("user %s uploaded avatar %s (%d bytes)", user["id"], stored_name, len(data))
    return {"success": True, "url": f"/avatars/{stored_name}", "filename": stored_name}
