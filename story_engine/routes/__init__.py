"""FastAPI API endpoints under /api.

Endpoint groups: auth, characters, locations, settings, personas,
adventures (with messages, adventure characters, search and chat nested
under /api/adventures/{id}/), health, admin jobs, avatar upload.

Everything except /auth/register, /auth/login and /health* requires a
session (cookie or bearer token).
"""

from fastapi import APIRouter

from .admin import router as admin_router
from .adventures import router as adventures_router
from .auth import router as auth_router
from .characters import router as characters_router
from .health import router as health_router
from .locations import router as locations_router
from .personas import router as personas_router
from .settings import router as settings_router
from .upload import router as upload_router

router = APIRouter()
router.include_router(health_router)
router.include_router(auth_router)
router.include_router(characters_router)
router.include_router(locations_router)
router.include_router(settings_router)
router.include_router(personas_router)
router.include_router(adventures_router)
router.include_router(admin_router)
router.include_router(upload_router)
