"""RoomSession — one open room and its local customisations.

Owns the room id, the decoded messages (immutable for the session's life),
the current overlay, and the room settings. Every mutation follows the same
discipline: build the new value, persist it, then return the recomputed
view. The view itself is never cached.

A session is the single owner of its room's overlay. Two sessions editing
the same room at once is unsupported.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from .decoder import decode_documents
from .export import build_export
from .fetcher import ProgressHook, RemoteFetcher
from .models import (
    ChapterMarker,
    EditedRoom,
    EditOverlay,
    Entry,
    ExportFile,
    NormalizedMessage,
    RoomSettings,
    RoomStats,
    check_room_id,
)
from .overlay import OverlayStore
from .reconcile import (
    apply_character_styles,
    filter_entries,
    place_chapters,
    reconcile,
    room_stats,
)
from .settings import RoomSettingsStore, merge_settings

logger = logging.getLogger(__name__)


class RoomSession:
    def __init__(
        self,
        room_id: str,
        messages: Sequence[NormalizedMessage],
        overlay_store: OverlayStore,
        settings_store: RoomSettingsStore,
    ) -> None:
        self.room_id = check_room_id(room_id)
        self._messages: tuple[NormalizedMessage, ...] = tuple(messages)
        self._message_ids = {m.id for m in self._messages}
        self._overlay_store = overlay_store
        self._settings_store = settings_store
        self._overlay = overlay_store.load(self.room_id)
        self._settings = settings_store.load(self.room_id)

    @classmethod
    async def open(
        cls,
        room_id: str,
        fetcher: RemoteFetcher,
        overlay_store: OverlayStore,
        settings_store: RoomSettingsStore,
        on_progress: ProgressHook | None = None,
    ) -> RoomSession:
        """Fetch and decode a room, then load its overlay and settings."""
        room_id = check_room_id(room_id)
        documents = await fetcher.fetch_all(room_id, on_progress=on_progress)
        messages = decode_documents(documents)
        logger.info("Opened room %s: %d messages", room_id, len(messages))
        return cls(room_id, messages, overlay_store, settings_store)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def messages(self) -> tuple[NormalizedMessage, ...]:
        return self._messages

    @property
    def overlay(self) -> EditOverlay:
        return self._overlay

    @property
    def settings(self) -> RoomSettings:
        return self._settings

    def _commit_overlay(self, overlay: EditOverlay) -> None:
        self._overlay = self._overlay_store.save(self.room_id, overlay)

    def _commit_settings(self, settings: RoomSettings) -> None:
        self._settings = self._settings_store.save(self.room_id, settings)

    def _commit_chapters(self, chapters: list[ChapterMarker]) -> None:
        self._commit_settings(self._settings.model_copy(update={"chapters": chapters}))

    def _require_message(self, message_id: str) -> None:
        if message_id not in self._message_ids:
            raise LookupError(f"Message {message_id} not found")

    def _shift_chapters(self, entries: list[Entry], after: int, delta: int) -> list[ChapterMarker]:
        """Rendered chapter markers, those past ``after`` moved by ``delta``."""
        return [
            e.model_copy(update={"position": e.position + delta}) if e.position > after else e
            for e in entries
            if isinstance(e, ChapterMarker)
        ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def view(self) -> list[Entry]:
        """Final ordered sequence of messages and chapter markers."""
        messages = reconcile(self._messages, self._overlay)
        entries = apply_character_styles(messages, self._settings.characters)
        return place_chapters(entries, self._settings.chapters)

    def filtered_view(self, search: str | None = None, dice_only: bool = False) -> list[Entry]:
        return filter_entries(self.view(), search=search, dice_only=dice_only)

    def stats(self) -> RoomStats:
        return room_stats(self.view())

    def export(self, now: datetime | None = None) -> ExportFile:
        """Export the current view. Characters carry the room's style overrides."""
        return build_export(self.room_id, len(self._messages), self.view(), self._overlay, now)

    def snapshot(
        self,
        title: str | None = None,
        description: str = "",
        snapshot_id: str | None = None,
        now: datetime | None = None,
    ) -> EditedRoom:
        """Publishable copy of the current view, including room settings."""
        now = now or datetime.now(timezone.utc)
        entries = self.view()
        return EditedRoom(
            id=check_room_id(snapshot_id or self.room_id),
            original_id=self.room_id,
            title=(title or "").strip() or self.room_id,
            description=description,
            last_updated=now.isoformat(),
            message_count=len(entries),
            original_message_count=len(self._messages),
            messages=entries,
            app_settings=self._settings,
        )

    # ------------------------------------------------------------------
    # Message mutations
    # ------------------------------------------------------------------

    def edit_message(self, message_id: str, text: str) -> list[Entry]:
        self._require_message(message_id)
        if message_id in self._overlay.deleted_ids:
            raise LookupError(f"Message {message_id} is deleted")
        text = text.strip()
        if not text:
            raise ValueError("Edited text cannot be empty")
        self._commit_overlay(self._overlay.with_edit(message_id, text))
        return self.view()

    def revert_edit(self, message_id: str) -> list[Entry]:
        self._require_message(message_id)
        self._commit_overlay(self._overlay.without_edit(message_id))
        return self.view()

    def delete_message(self, message_id: str) -> list[Entry]:
        """Hide a message. Chapters after it shift back by one to stay attached."""
        self._require_message(message_id)
        if message_id in self._overlay.deleted_ids:
            self._commit_overlay(self._overlay)
            return self.view()

        entries = self.view()
        index = next(i for i, e in enumerate(entries) if e.id == message_id)
        self._commit_overlay(self._overlay.with_deletion(message_id))
        if any(isinstance(e, ChapterMarker) for e in entries[index:]):
            self._commit_chapters(self._shift_chapters(entries, index, -1))
        return self.view()

    def restore_message(self, message_id: str) -> list[Entry]:
        """Un-hide a message. It lands right after the message it now follows,
        and chapters from that slot on move forward by one.
        """
        self._require_message(message_id)
        if message_id not in self._overlay.deleted_ids:
            self._commit_overlay(self._overlay)
            return self.view()

        entries = self.view()
        restored = self._overlay.without_deletion(message_id)
        order = [m.id for m in reconcile(self._messages, restored)]
        position = order.index(message_id)
        landing = 0
        if position > 0:
            previous = order[position - 1]
            landing = 1 + next(
                i for i, e in enumerate(entries)
                if isinstance(e, NormalizedMessage) and e.id == previous
            )
        self._commit_overlay(restored)
        if any(isinstance(e, ChapterMarker) for e in entries[landing:]):
            self._commit_chapters(self._shift_chapters(entries, landing - 1, 1))
        return self.view()

    def replace_overlay(self, overlay: EditOverlay) -> list[Entry]:
        """Adopt an overlay produced elsewhere (e.g. a shared edits file)."""
        self._commit_overlay(overlay)
        return self.view()

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def set_order(self, sequence: Sequence[str]) -> list[Entry]:
        """Store a new preferred order.

        Message ids become the overlay order. Chapter ids take their index
        among the entries of the sequence that will actually render: deleted,
        unknown and repeated ids do not count.
        """
        chapter_ids = {c.id for c in self._settings.chapters}
        visible = self._message_ids - self._overlay.deleted_ids
        positions: dict[str, int] = {}
        seen: set[str] = set()
        for entry_id in sequence:
            if entry_id in seen or not (entry_id in chapter_ids or entry_id in visible):
                continue
            seen.add(entry_id)
            if entry_id in chapter_ids:
                positions[entry_id] = len(seen) - 1

        self._commit_overlay(
            self._overlay.with_order([i for i in sequence if i not in chapter_ids])
        )
        if positions:
            self._commit_chapters([
                c.model_copy(update={"position": positions[c.id]}) if c.id in positions else c
                for c in self._settings.chapters
            ])
        return self.view()

    def move_entry(self, from_index: int, to_index: int) -> list[Entry]:
        """Move one entry of the current view, as a drag-and-drop would."""
        sequence = [entry.id for entry in self.view()]
        if not (0 <= from_index < len(sequence) and 0 <= to_index < len(sequence)):
            raise IndexError(f"Cannot move entry {from_index} to {to_index}")
        sequence.insert(to_index, sequence.pop(from_index))
        return self.set_order(sequence)

    # ------------------------------------------------------------------
    # Chapters and settings
    # ------------------------------------------------------------------

    def add_chapter(
        self, title: str, description: str = "", position: int | None = None
    ) -> ChapterMarker:
        title = title.strip()
        if not title:
            raise ValueError("Chapter title cannot be empty")
        entries = self.view()
        if position is None:
            position = len(entries)
        if not 0 <= position <= len(entries):
            raise IndexError(f"Chapter position {position} out of range")

        marker = ChapterMarker(
            id=f"chapter-{uuid.uuid4().hex[:12]}",
            position=position,
            title=title,
            description=description.strip(),
        )
        # entries at or after the insertion point move down one slot
        self._commit_chapters([*self._shift_chapters(entries, position - 1, 1), marker])
        return marker

    def remove_chapter(self, chapter_id: str) -> list[Entry]:
        entries = self.view()
        index = next(
            (i for i, e in enumerate(entries) if isinstance(e, ChapterMarker) and e.id == chapter_id),
            None,
        )
        if index is None:
            raise LookupError(f"Chapter {chapter_id} not found")
        remaining = [c for c in self._shift_chapters(entries, index, -1) if c.id != chapter_id]
        self._commit_chapters(remaining)
        return self.view()

    def update_settings(self, fields: dict[str, Any]) -> RoomSettings:
        merged = merge_settings(self._settings, fields)
        self._commit_settings(merged.model_copy(update={"chapters": self._settings.chapters}))
        return self._settings
