"""Tests for trpg_log.reconcile — overlay merge, chapters, filters, stats."""

import itertools

from trpg_log.models import (
    ChapterMarker,
    Character,
    CharacterStyle,
    DiceResult,
    EditOverlay,
    NormalizedMessage,
)
from trpg_log.reconcile import (
    apply_character_styles,
    filter_entries,
    place_chapters,
    reconcile,
    room_stats,
)


def _msg(msg_id: str, t: int, text: str = "", name: str = "Aldric", dice: bool = False) -> NormalizedMessage:
    ts = f"2024-03-01T19:00:{t:02d}Z"
    return NormalizedMessage(
        id=msg_id,
        create_time=ts,
        update_time=ts,
        character=Character(name=name, color="#666"),
        text=text,
        dice_result=DiceResult(result="1D6 > 4") if dice else None,
    )


def _overlay(edits=None, deleted=(), order=()) -> EditOverlay:
    return EditOverlay(edits=edits or {}, deleted_ids=frozenset(deleted), order=tuple(order))


def _ids(entries) -> list[str]:
    return [e.id for e in entries]


M = [_msg("a", 1, "hi"), _msg("b", 2, "bye")]


# ── Scenarios ────────────────────────────────────────────────


def test_scenario_edit_and_reorder():
    result = reconcile(M, _overlay(edits={"a": "hello"}, order=["b", "a"]))
    assert [(m.id, m.text) for m in result] == [("b", "bye"), ("a", "hello")]


def test_scenario_deleted_id_in_order_is_ignored():
    result = reconcile(M, _overlay(edits={"a": "hello"}, deleted={"b"}, order=["b", "a"]))
    assert [(m.id, m.text) for m in result] == [("a", "hello")]


# ── Properties ───────────────────────────────────────────────

MESSAGES = [_msg(i, n, f"text {i}") for n, i in enumerate("abcdef")]

OVERLAYS = [
    _overlay(),
    _overlay(deleted={"a", "c"}),
    _overlay(edits={"b": "B!", "zz": "stale"}),
    _overlay(order=["f", "a", "f", "ghost"]),
    _overlay(edits={"a": "A!"}, deleted={"a", "e"}, order=["e", "d", "a"]),
    _overlay(deleted={"ghost"}, order=["c"]),
]


def test_deletion_is_absolute():
    for overlay in OVERLAYS:
        result_ids = set(_ids(reconcile(MESSAGES, overlay)))
        assert not result_ids & overlay.deleted_ids


def test_edit_precedence():
    for overlay in OVERLAYS:
        for m in reconcile(MESSAGES, overlay):
            if m.id in overlay.edits:
                assert m.text == overlay.edits[m.id]
            else:
                assert m.text == f"text {m.id}"


def test_empty_order_is_noop():
    assert reconcile(MESSAGES, _overlay()) == MESSAGES
    survivors = reconcile(MESSAGES, _overlay(deleted={"b"}))
    assert _ids(survivors) == ["a", "c", "d", "e", "f"]


def test_unordered_messages_follow_in_original_order():
    result = reconcile(MESSAGES, _overlay(order=["e", "b"]))
    assert _ids(result) == ["e", "b", "a", "c", "d", "f"]


def test_new_messages_are_appended_not_dropped():
    # order saved before messages g and h existed
    overlay = _overlay(order=["b", "a"])
    grown = MESSAGES + [_msg("g", 30), _msg("h", 31)]
    assert _ids(reconcile(grown, overlay)) == ["b", "a", "c", "d", "e", "f", "g", "h"]


def test_duplicate_ids_in_order_first_wins():
    result = reconcile(MESSAGES, _overlay(order=["c", "a", "c", "a"]))
    assert _ids(result) == ["c", "a", "b", "d", "e", "f"]


def test_output_is_a_permutation_of_survivors():
    for overlay in OVERLAYS:
        result = _ids(reconcile(MESSAGES, overlay))
        assert sorted(result) == sorted(i for i in "abcdef" if i not in overlay.deleted_ids)
        assert len(result) == len(set(result))


def test_idempotent():
    for overlay in OVERLAYS:
        first = reconcile(MESSAGES, overlay)
        second = reconcile(MESSAGES, overlay)
        assert first == second
        assert [m.model_dump_json() for m in first] == [m.model_dump_json() for m in second]


def test_inputs_not_mutated():
    before = [m.model_copy() for m in MESSAGES]
    overlay = _overlay(edits={"a": "changed"}, deleted={"b"}, order=["c"])
    reconcile(MESSAGES, overlay)
    assert MESSAGES == before
    assert MESSAGES[0].text == "text a"
    assert overlay.order == ("c",)


def test_unedited_messages_are_same_objects():
    result = reconcile(MESSAGES, _overlay(edits={"a": "x"}))
    assert result[0] is not MESSAGES[0]
    assert result[1] is MESSAGES[1]


# ── place_chapters ───────────────────────────────────────────


def _chapter(chapter_id: str, position: int) -> ChapterMarker:
    return ChapterMarker(id=chapter_id, position=position, title=chapter_id.upper())


def _assert_positions_match_indices(entries):
    for index, entry in enumerate(entries):
        if isinstance(entry, ChapterMarker):
            assert entry.position == index


def test_chapters_inserted_at_positions():
    entries = place_chapters(MESSAGES[:3], [_chapter("ch2", 2), _chapter("ch0", 0)])
    assert _ids(entries) == ["ch0", "a", "ch2", "b", "c"]
    _assert_positions_match_indices(entries)


def test_chapter_past_end_is_clamped_and_renumbered():
    entries = place_chapters(MESSAGES[:2], [_chapter("end", 10)])
    assert _ids(entries) == ["a", "b", "end"]
    assert entries[-1].position == 2


def test_chapter_positions_after_reorder():
    for order in itertools.permutations("abc"):
        messages = reconcile(MESSAGES[:3], _overlay(order=list(order)))
        entries = place_chapters(messages, [_chapter("x", 1), _chapter("y", 3)])
        assert _ids(entries) == [order[0], "x", order[1], "y", order[2]]
        _assert_positions_match_indices(entries)


def test_chapter_renumbering_does_not_mutate_input():
    chapter = _chapter("far", 99)
    place_chapters(MESSAGES[:1], [chapter])
    assert chapter.position == 99


def test_no_chapters_passthrough():
    assert place_chapters(MESSAGES, []) == MESSAGES


# ── apply_character_styles ───────────────────────────────────


def test_character_styles_override_copies():
    messages = [_msg("a", 1, name="Aldric"), _msg("b", 2, name="Kira")]
    styled = apply_character_styles(messages, {"Kira": CharacterStyle(color="#0f0", icon_url="k.png")})
    assert styled[0] is messages[0]
    assert styled[1].character.color == "#0f0"
    assert styled[1].character.icon_url == "k.png"
    assert messages[1].character.color == "#666"


def test_character_style_empty_icon_clears_avatar():
    message = _msg("a", 1).model_copy(
        update={"character": Character(name="Aldric", color="#666", icon_url="old.png")}
    )
    styled = apply_character_styles([message], {"Aldric": CharacterStyle(icon_url="")})
    assert styled[0].character.icon_url is None


# ── filter_entries / room_stats ──────────────────────────────


def test_filter_by_text_or_name():
    entries = [_msg("a", 1, "The dragon wakes"), _msg("b", 2, "hello", name="Dragonborn"),
               _msg("c", 3, "nothing"), _chapter("ch", 1)]
    assert _ids(filter_entries(entries, search="DRAGON")) == ["a", "b"]


def test_filter_keeps_matching_chapters():
    entries = [_msg("a", 1, "x"), ChapterMarker(id="ch", position=1, title="The Dragon")]
    assert _ids(filter_entries(entries, search="dragon")) == ["ch"]


def test_filter_dice_only():
    entries = [_msg("a", 1, dice=True), _msg("b", 2), _chapter("ch", 1)]
    assert _ids(filter_entries(entries, dice_only=True)) == ["a"]


def test_filter_blank_search_keeps_all():
    entries = [_msg("a", 1), _chapter("ch", 1)]
    assert filter_entries(entries, search="  ") == entries


def test_room_stats():
    entries = [_msg("a", 1, dice=True), _msg("b", 2, name="Kira"), _msg("c", 3), _chapter("ch", 1)]
    stats = room_stats(entries)
    assert stats.messages == 3
    assert stats.characters == 2
    assert stats.dice_rolls == 1
    assert stats.chapters == 1
