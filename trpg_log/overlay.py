"""Overlay persistence — one JSON file per room.

    {base}/
      {room_id}.json   ← {edits, deletedMessages, messageOrder, saveTime, version}

Loading never fails: a missing, unreadable, or invalid file yields the empty
overlay and the problem is logged. Saving writes the complete snapshot at
once; there is no batching, so a crash loses at most the mutation in flight.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, TypeVar

from pydantic import BaseModel

from .models import EditOverlay, check_room_id

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class OverlayStore(Protocol):
    def load(self, room_id: str) -> EditOverlay: ...

    def save(self, room_id: str, overlay: EditOverlay) -> EditOverlay: ...


class JsonRoomFiles:
    """Per-room JSON files under one directory, validated through a model."""

    kind = "record"

    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, room_id: str) -> Path:
        return self._base / f"{check_room_id(room_id)}.json"

    def _read_model(self, room_id: str, model: type[M], default: M) -> M:
        path = self._path(room_id)
        if not path.is_file():
            return default
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable %s for room %s, using defaults: %s", self.kind, room_id, e)
            return default

    def _write_model(self, room_id: str, value: BaseModel) -> None:
        self._path(room_id).write_text(
            value.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )

    def delete(self, room_id: str) -> bool:
        path = self._path(room_id)
        if not path.is_file():
            return False
        path.unlink()
        return True


class JsonOverlayStore(JsonRoomFiles):
    kind = "overlay"

    def load(self, room_id: str) -> EditOverlay:
        return self._read_model(room_id, EditOverlay, EditOverlay())

    def save(self, room_id: str, overlay: EditOverlay) -> EditOverlay:
        """Stamp saveTime and write the full overlay. Returns the stamped copy."""
        stamped = overlay.model_copy(update={"saved_at": utc_now()})
        self._write_model(room_id, stamped)
        logger.debug(
            "saved overlay room=%s edits=%d deleted=%d order=%d",
            room_id, len(stamped.edits), len(stamped.deleted_ids), len(stamped.order),
        )
        return stamped
