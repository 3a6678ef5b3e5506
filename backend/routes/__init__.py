"""FastAPI API endpoints under /api.

Endpoint groups: health + global settings, open rooms (load, view, edit,
delete, order, chapters, overlay, room settings, export, publish), and
published rooms. An open room's endpoints are nested under
/api/rooms/{room_id}/ and return 404 until the room has been loaded.
"""

from fastapi import APIRouter

from .published import router as published_router
from .rooms import router as rooms_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(rooms_router)
router.include_router(published_router)
