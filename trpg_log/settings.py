"""Per-room appearance settings and chapter markers.

Stored next to the overlay as ``{base}/{room_id}.json``. Like the overlay, a
corrupt file falls back to defaults instead of failing the room.

merge_settings() applies a partial update: pageBackground / logContainer are
merged field by field, channels are replaced wholesale, characters are merged
key by key. Chapters are managed through RoomSession and ignored here.
"""

from __future__ import annotations

import logging
from typing import Any

from .models import RoomSettings
from .overlay import JsonRoomFiles

logger = logging.getLogger(__name__)


def merge_settings(current: RoomSettings, fields: dict[str, Any]) -> RoomSettings:
    """Return current with a partial camelCase update applied.

    Raises ValueError (pydantic ValidationError) on invalid values.
    """
    data = current.model_dump(mode="json", by_alias=True)
    for group in ("pageBackground", "logContainer"):
        if isinstance(fields.get(group), dict):
            data[group].update(fields[group])
    if "channels" in fields:
        if not fields["channels"]:
            raise ValueError("At least one channel is required")
        data["channels"] = fields["channels"]
    if isinstance(fields.get("characters"), dict):
        for name, style in fields["characters"].items():
            if style is None:
                data["characters"].pop(name, None)
            else:
                data["characters"][name] = style
    return RoomSettings.model_validate(data)


class RoomSettingsStore(JsonRoomFiles):
    kind = "settings"

    def load(self, room_id: str) -> RoomSettings:
        return self._read_model(room_id, RoomSettings, RoomSettings())

    def save(self, room_id: str, settings: RoomSettings) -> RoomSettings:
        self._write_model(room_id, settings)
        logger.debug("saved settings room=%s chapters=%d", room_id, len(settings.chapters))
        return settings
