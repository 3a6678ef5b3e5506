"""Open-room endpoints: load, view, edit, delete, reorder, chapters, export.

Every mutating endpoint persists the overlay before it returns the
recomputed view.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from backend import sessions, storage
from trpg_log.export import export_filename
from trpg_log.fetcher import FetchError
from trpg_log.models import EditOverlay
from trpg_log.session import RoomSession

from .models import ChapterBody, EditBody, MoveBody, OrderBody, PublishBody

router = APIRouter()


def _session(room_id: str) -> RoomSession:
    session = sessions.get_session(room_id)
    if session is None:
        raise HTTPException(404, "Room not loaded")
    return session


def _dump(entries) -> list[dict]:
    return [e.model_dump(mode="json", by_alias=True) for e in entries]


@router.post("/rooms/{room_id}/load")
async def load_room(room_id: str):
    """Fetch a room from the remote store and open it for editing."""
    try:
        session = await sessions.open_room(room_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except FetchError as e:
        raise HTTPException(502, str(e))
    return {
        "roomId": session.room_id,
        "originalMessageCount": len(session.messages),
        "stats": session.stats().model_dump(by_alias=True),
    }


@router.delete("/rooms/{room_id}")
async def close_room(room_id: str):
    """Forget an open room. Its overlay stays on disk."""
    if not sessions.close_room(room_id):
        raise HTTPException(404, "Room not loaded")
    return {"ok": True}


@router.get("/rooms/{room_id}/view")
async def get_view(room_id: str, search: str | None = None, dice_only: bool = False):
    """Reconciled entries, optionally filtered by text/name or dice rolls."""
    session = _session(room_id)
    return _dump(session.filtered_view(search=search, dice_only=dice_only))


@router.get("/rooms/{room_id}/stats")
async def get_stats(room_id: str):
    return _session(room_id).stats().model_dump(by_alias=True)


@router.put("/rooms/{room_id}/messages/{message_id}")
async def edit_message(room_id: str, message_id: str, body: EditBody):
    """Replace a message's text in the overlay."""
    session = _session(room_id)
    try:
        return _dump(session.edit_message(message_id, body.text))
    except LookupError as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.delete("/rooms/{room_id}/messages/{message_id}/edit")
async def revert_edit(room_id: str, message_id: str):
    """Drop an overlay edit, showing the original text again."""
    try:
        return _dump(_session(room_id).revert_edit(message_id))
    except LookupError as e:
        raise HTTPException(404, str(e))


@router.delete("/rooms/{room_id}/messages/{message_id}")
async def delete_message(room_id: str, message_id: str):
    """Hide a message from the view and every export."""
    try:
        return _dump(_session(room_id).delete_message(message_id))
    except LookupError as e:
        raise HTTPException(404, str(e))


@router.post("/rooms/{room_id}/messages/{message_id}/restore")
async def restore_message(room_id: str, message_id: str):
    try:
        return _dump(_session(room_id).restore_message(message_id))
    except LookupError as e:
        raise HTTPException(404, str(e))


@router.put("/rooms/{room_id}/order")
async def set_order(room_id: str, body: OrderBody):
    """Store a new preferred order of message and chapter ids."""
    return _dump(_session(room_id).set_order(body.ids))


@router.post("/rooms/{room_id}/move")
async def move_entry(room_id: str, body: MoveBody):
    """Move one entry of the current view from one index to another."""
    try:
        return _dump(_session(room_id).move_entry(body.from_index, body.to_index))
    except IndexError as e:
        raise HTTPException(400, str(e))


@router.post("/rooms/{room_id}/chapters", status_code=201)
async def add_chapter(room_id: str, body: ChapterBody):
    session = _session(room_id)
    try:
        marker = session.add_chapter(body.title, body.description, body.position)
    except (ValueError, IndexError) as e:
        raise HTTPException(400, str(e))
    return marker.model_dump(by_alias=True)


@router.delete("/rooms/{room_id}/chapters/{chapter_id}")
async def remove_chapter(room_id: str, chapter_id: str):
    try:
        return _dump(_session(room_id).remove_chapter(chapter_id))
    except LookupError as e:
        raise HTTPException(404, str(e))


@router.get("/rooms/{room_id}/overlay")
async def get_overlay(room_id: str):
    """The overlay persistence record, for sharing or backup."""
    return _session(room_id).overlay.to_record()


@router.put("/rooms/{room_id}/overlay")
async def replace_overlay(room_id: str, body: dict):
    """Import an overlay record, replacing the current one."""
    session = _session(room_id)
    try:
        overlay = EditOverlay.model_validate(body)
    except ValidationError as e:
        raise HTTPException(400, f"Invalid overlay record: {e.error_count()} errors")
    return _dump(session.replace_overlay(overlay))


@router.get("/rooms/{room_id}/settings")
async def get_room_settings(room_id: str):
    return _session(room_id).settings.model_dump(by_alias=True)


@router.patch("/rooms/{room_id}/settings")
async def update_room_settings(room_id: str, body: dict):
    """Partial update of appearance settings (chapters are not touched)."""
    session = _session(room_id)
    try:
        return session.update_settings(body).model_dump(by_alias=True)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("/rooms/{room_id}/export")
async def export_room(room_id: str):
    """Export file of the reconciled room, served as a download."""
    export = _session(room_id).export()
    return JSONResponse(
        export.model_dump(mode="json", by_alias=True),
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(export.room_id)}"'
        },
    )


@router.post("/rooms/{room_id}/publish", status_code=201)
async def publish_room(room_id: str, body: PublishBody):
    """Publish the reconciled room as an edited-room snapshot."""
    session = _session(room_id)
    try:
        snapshot = session.snapshot(
            title=body.title, description=body.description, snapshot_id=body.id
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return storage.room_library().publish(snapshot).model_dump(by_alias=True)
