"""Published room endpoints (manifest + snapshots)."""

from fastapi import APIRouter, HTTPException

from backend import storage

router = APIRouter()


@router.get("/published")
async def list_published():
    """Room manifest: id, title, description, lastUpdated, messageCount."""
    return [r.model_dump(by_alias=True) for r in storage.room_library().list_rooms()]


@router.get("/published/{room_id}")
async def get_published(room_id: str):
    try:
        room = storage.room_library().get_room(room_id)
    except ValueError:
        room = None
    if room is None:
        raise HTTPException(404, "Room not found")
    return room.model_dump(mode="json", by_alias=True)


@router.delete("/published/{room_id}")
async def delete_published(room_id: str):
    try:
        deleted = storage.room_library().delete_room(room_id)
    except ValueError:
        deleted = False
    if not deleted:
        raise HTTPException(404, "Room not found")
    return {"ok": True}
