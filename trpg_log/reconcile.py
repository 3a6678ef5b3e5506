"""Reconciliation — merge the immutable remote log with the local overlay.

reconcile() runs three steps, always in this order:

  1. Deletion filter — drop every message whose id is in deletedIds.
  2. Edits          — survivors with an edit entry are replaced by a copy
                      carrying the edited text. Inputs are never mutated.
  3. Reordering     — ids in ``order`` are placed first, left to right (first
                      occurrence wins); all other survivors follow in their
                      original createTime order. An empty order is a no-op.

Ids in the overlay that match no current message are ignored. Nothing here
keeps state between calls: the same inputs always give the same output.

place_chapters() then inserts chapter markers by array position and
renumbers each marker's ``position`` to its index in the final array.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .models import (
    ChapterMarker,
    CharacterStyle,
    EditOverlay,
    Entry,
    NormalizedMessage,
    RoomStats,
)


def reconcile(
    messages: Sequence[NormalizedMessage], overlay: EditOverlay
) -> list[NormalizedMessage]:
    deleted = overlay.deleted_ids
    survivors = [m for m in messages if m.id not in deleted]

    edits = overlay.edits
    survivors = [
        m.model_copy(update={"text": edits[m.id]}) if m.id in edits else m
        for m in survivors
    ]

    if not overlay.order:
        return survivors

    unplaced = {m.id: m for m in survivors}
    ordered: list[NormalizedMessage] = []
    for message_id in overlay.order:
        message = unplaced.pop(message_id, None)
        if message is not None:
            ordered.append(message)
    ordered.extend(m for m in survivors if m.id in unplaced)
    return ordered


def place_chapters(
    entries: Sequence[Entry], chapters: Sequence[ChapterMarker]
) -> list[Entry]:
    """Insert chapter markers at their positions and renumber them.

    Markers are inserted in ascending position (ties keep list order), each
    into the array built so far, with positions clamped to its bounds.
    """
    result: list[Entry] = list(entries)
    for marker in sorted(chapters, key=lambda c: c.position):
        index = min(max(marker.position, 0), len(result))
        result.insert(index, marker)

    for index, entry in enumerate(result):
        if isinstance(entry, ChapterMarker) and entry.position != index:
            result[index] = entry.model_copy(update={"position": index})
    return result


def apply_character_styles(
    entries: Sequence[Entry], styles: Mapping[str, CharacterStyle]
) -> list[Entry]:
    """Override colour/avatar for every message by a restyled character name."""
    if not styles:
        return list(entries)

    result: list[Entry] = []
    for entry in entries:
        style = styles.get(entry.character.name) if isinstance(entry, NormalizedMessage) else None
        if style is None:
            result.append(entry)
            continue
        update = {}
        if style.color is not None:
            update["color"] = style.color
        if style.icon_url is not None:
            update["icon_url"] = style.icon_url or None
        character = entry.character.model_copy(update=update)
        result.append(entry.model_copy(update={"character": character}))
    return result


def filter_entries(
    entries: Sequence[Entry], search: str | None = None, dice_only: bool = False
) -> list[Entry]:
    """Display filter: case-insensitive text/name search, or dice rolls only.

    Chapter markers survive a search only when their title matches, and never
    survive the dice filter.
    """
    term = (search or "").strip().lower()
    result: list[Entry] = []
    for entry in entries:
        if isinstance(entry, ChapterMarker):
            if dice_only or (term and term not in entry.title.lower()):
                continue
        else:
            if dice_only and entry.dice_result is None:
                continue
            if term and term not in entry.text.lower() and term not in entry.character.name.lower():
                continue
        result.append(entry)
    return result


def room_stats(entries: Sequence[Entry]) -> RoomStats:
    messages = [e for e in entries if isinstance(e, NormalizedMessage)]
    return RoomStats(
        messages=len(messages),
        characters=len({m.character.name for m in messages}),
        dice_rolls=sum(1 for m in messages if m.dice_result is not None),
        chapters=len(entries) - len(messages),
    )
