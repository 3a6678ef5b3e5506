"""Core domain models.

Decoded messages, chapter markers, the edit overlay, per-room settings, and
every exported/published record. Pydantic is used for validation and
serialisation at every data boundary.

Attributes are snake_case; every JSON format is camelCase. Always dump with
``by_alias=True`` when writing JSON.

Messages and chapter markers are frozen value objects: an edit produces a new
object via ``model_copy(update=...)``, never an in-place field write.
"""

from __future__ import annotations

import re
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

OVERLAY_VERSION = "1.0"

_ROOM_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def check_room_id(room_id: str | None) -> str:
    """Return the stripped room id, or raise ValueError if blank or unsafe.

    Room ids double as file names in the data directory.
    """
    room_id = (room_id or "").strip()
    if not room_id:
        raise ValueError("Room id is required")
    if not _ROOM_ID_RE.match(room_id):
        raise ValueError(f"Invalid room id: {room_id!r}")
    return room_id


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Value(_Wire):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class Character(_Value):
    """Who spoke a message, as shown next to it."""

    name: str
    color: str
    icon_url: str | None = None
    from_: str | None = Field(default=None, alias="from")  # sender uid


class DiceResult(_Value):
    result: str | None = None
    success: bool = False
    critical: bool = False
    fumble: bool = False


class NormalizedMessage(_Value):
    """One remote log entry after decoding. Has no identity beyond its id."""

    id: str
    create_time: str
    update_time: str
    character: Character
    text: str = ""
    channel: str | None = None
    is_private: bool = False
    dice_result: DiceResult | None = None
    type: str | None = None
    edited: bool = False  # edited on the remote side, not by the overlay


class ChapterMarker(_Value):
    """Synthetic entry segmenting the log. Never derived from the remote store.

    ``position`` is an index into the final ordered array, not a timestamp.
    """

    id: str
    position: int
    title: str
    description: str = ""
    is_chapter: Literal[True] = True


Entry = Union[NormalizedMessage, ChapterMarker]


# ---------------------------------------------------------------------------
# Overlay
# ---------------------------------------------------------------------------

class EditOverlay(BaseModel):
    """Local customisations layered over an immutable remote log.

    Serialises to the persistence record
    ``{edits, deletedMessages, messageOrder, saveTime, version}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    edits: dict[str, str] = Field(default_factory=dict)
    deleted_ids: frozenset[str] = Field(default_factory=frozenset, alias="deletedMessages")
    order: tuple[str, ...] = Field(default=(), alias="messageOrder")
    saved_at: str | None = Field(default=None, alias="saveTime")
    version: str = OVERLAY_VERSION

    @field_serializer("deleted_ids")
    def _sorted_ids(self, ids: frozenset[str]) -> list[str]:
        return sorted(ids)

    def with_edit(self, message_id: str, text: str) -> EditOverlay:
        return self.model_copy(update={"edits": {**self.edits, message_id: text}})

    def without_edit(self, message_id: str) -> EditOverlay:
        edits = {k: v for k, v in self.edits.items() if k != message_id}
        return self.model_copy(update={"edits": edits})

    def with_deletion(self, message_id: str) -> EditOverlay:
        return self.model_copy(update={"deleted_ids": self.deleted_ids | {message_id}})

    def without_deletion(self, message_id: str) -> EditOverlay:
        return self.model_copy(update={"deleted_ids": self.deleted_ids - {message_id}})

    def with_order(self, order: list[str] | tuple[str, ...]) -> EditOverlay:
        return self.model_copy(update={"order": tuple(order)})

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Per-room settings
# ---------------------------------------------------------------------------

class PageBackground(_Wire):
    type: Literal["gradient", "solid"] = "gradient"
    color1: str = "#667eea"
    color2: str = "#764ba2"
    image: str | None = None


class LogContainer(_Wire):
    background_color: str = "#ffffff"
    background_image: str | None = None
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)


class Channel(_Wire):
    name: str
    color: str = "#e3f2fd"
    background_color: str = "rgba(227,242,253,0.3)"


class CharacterStyle(_Wire):
    """Per character-name override of colour and avatar."""

    color: str | None = None
    icon_url: str | None = None


def _default_channels() -> dict[str, Channel]:
    return {"main": Channel(name="Main")}


class RoomSettings(_Wire):
    """Appearance settings and chapter markers for one room."""

    page_background: PageBackground = Field(default_factory=PageBackground)
    log_container: LogContainer = Field(default_factory=LogContainer)
    channels: dict[str, Channel] = Field(default_factory=_default_channels)
    characters: dict[str, CharacterStyle] = Field(default_factory=dict)
    chapters: list[ChapterMarker] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Export and publishing
# ---------------------------------------------------------------------------

class ExportRecord(_Value):
    id: str
    create_time: str
    update_time: str
    character: Character
    content: str
    type: str | None = None
    channel: str | None = None
    is_edited: bool = False
    is_private: bool = False
    dice: DiceResult | None = None
    is_modified: bool = False


class ExportFile(_Wire):
    room_id: str
    export_time: str
    original_message_count: int
    displayed_message_count: int
    messages: list[ExportRecord]


class RoomStats(_Wire):
    messages: int = 0
    characters: int = 0
    dice_rolls: int = 0
    chapters: int = 0


class RoomSummary(_Wire):
    """One entry of the published room manifest."""

    id: str
    title: str
    description: str = ""
    last_updated: str
    message_count: int


class EditedRoom(_Wire):
    """A published snapshot of a reconciled room."""

    id: str
    original_id: str | None = None
    title: str
    description: str = ""
    last_updated: str
    message_count: int
    original_message_count: int
    messages: list[Entry] = Field(default_factory=list)
    app_settings: RoomSettings | None = None

    def summary(self) -> RoomSummary:
        return RoomSummary(
            id=self.id,
            title=self.title,
            description=self.description,
            last_updated=self.last_updated,
            message_count=self.message_count,
        )
