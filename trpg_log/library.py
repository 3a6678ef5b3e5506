"""Published rooms — edited-room snapshots plus the room manifest.

    {base}/
      rooms.json            ← [{id, title, description, lastUpdated, messageCount}]
      {id}-edited.json      ← EditedRoom snapshot

Publishing the same id again replaces both the snapshot and its manifest
entry in place. An unreadable manifest lists as empty.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from .models import EditedRoom, RoomSummary, check_room_id

logger = logging.getLogger(__name__)

_manifest_adapter = TypeAdapter(list[RoomSummary])


class RoomLibrary:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def manifest_path(self) -> Path:
        return self._base / "rooms.json"

    def _snapshot_path(self, room_id: str) -> Path:
        return self._base / f"{check_room_id(room_id)}-edited.json"

    def _write_manifest(self, rooms: list[RoomSummary]) -> None:
        self.manifest_path.write_text(
            json.dumps([r.model_dump(mode="json", by_alias=True) for r in rooms], indent=2),
            encoding="utf-8",
        )

    def list_rooms(self) -> list[RoomSummary]:
        path = self.manifest_path
        if not path.is_file():
            return []
        try:
            return _manifest_adapter.validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable room manifest, listing no rooms: %s", e)
            return []

    def get_room(self, room_id: str) -> EditedRoom | None:
        path = self._snapshot_path(room_id)
        if not path.is_file():
            return None
        try:
            return EditedRoom.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable snapshot for room %s: %s", room_id, e)
            return None

    def publish(self, room: EditedRoom) -> RoomSummary:
        """Write the snapshot and upsert its manifest entry by id."""
        self._snapshot_path(room.id).write_text(
            room.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        summary = room.summary()
        rooms = self.list_rooms()
        for i, existing in enumerate(rooms):
            if existing.id == summary.id:
                rooms[i] = summary
                break
        else:
            rooms.append(summary)
        self._write_manifest(rooms)
        logger.info("Published room %s (%d entries)", room.id, room.message_count)
        return summary

    def delete_room(self, room_id: str) -> bool:
        path = self._snapshot_path(room_id)
        rooms = self.list_rooms()
        remaining = [r for r in rooms if r.id != room_id]
        if not path.is_file() and len(remaining) == len(rooms):
            return False
        if path.is_file():
            path.unlink()
        self._write_manifest(remaining)
        return True
