"""Flat export of a reconciled room.

Only messages are exported; chapter markers are a display concern and are
left out. Deleted messages never get here because reconcile() dropped them.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from .models import EditOverlay, Entry, ExportFile, ExportRecord, NormalizedMessage


def export_record(message: NormalizedMessage, overlay: EditOverlay) -> ExportRecord:
    modified = message.id in overlay.edits
    return ExportRecord(
        id=message.id,
        create_time=message.create_time,
        update_time=message.update_time,
        character=message.character,
        content=overlay.edits[message.id] if modified else message.text,
        type=message.type,
        channel=message.channel,
        is_edited=message.edited,
        is_private=message.is_private,
        dice=message.dice_result,
        is_modified=modified,
    )


def build_export(
    room_id: str,
    original_count: int,
    entries: Sequence[Entry],
    overlay: EditOverlay,
    now: datetime | None = None,
) -> ExportFile:
    """Export the messages among ``entries``.

    Each record copies its entry's ``character`` as given, so entries taken
    from RoomSession.view() carry the room's character style overrides.
    """
    now = now or datetime.now(timezone.utc)
    records = [
        export_record(entry, overlay)
        for entry in entries
        if isinstance(entry, NormalizedMessage)
    ]
    return ExportFile(
        room_id=room_id,
        export_time=now.isoformat(),
        original_message_count=original_count,
        displayed_message_count=len(records),
        messages=records,
    )


def export_filename(room_id: str, now: datetime | None = None) -> str:
    """trpg-log-{room_id}-{YYYY-MM-DD}.json"""
    now = now or datetime.now(timezone.utc)
    return f"trpg-log-{room_id}-{now.date().isoformat()}.json"
