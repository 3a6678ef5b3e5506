"""Tests for overlay and room-settings persistence."""

import json

import pytest

from trpg_log.models import ChapterMarker, EditOverlay, RoomSettings
from trpg_log.overlay import JsonOverlayStore
from trpg_log.settings import RoomSettingsStore, merge_settings


@pytest.fixture
def store(tmp_path) -> JsonOverlayStore:
    return JsonOverlayStore(tmp_path / "overlays")


@pytest.fixture
def settings_store(tmp_path) -> RoomSettingsStore:
    return RoomSettingsStore(tmp_path / "settings")


# ── JsonOverlayStore ─────────────────────────────────────────


def test_load_missing_is_empty(store):
    assert store.load("room1") == EditOverlay()


def test_save_and_load_roundtrip(store):
    overlay = EditOverlay().with_edit("a", "hello").with_deletion("b").with_order(["b", "a"])
    saved = store.save("room1", overlay)
    assert saved.saved_at is not None
    loaded = store.load("room1")
    assert loaded == saved
    assert loaded.edits == {"a": "hello"}
    assert loaded.deleted_ids == {"b"}
    assert loaded.order == ("b", "a")


def test_save_writes_persistence_record(store, tmp_path):
    store.save("room1", EditOverlay().with_edit("a", "x").with_deletion("b"))
    record = json.loads((tmp_path / "overlays" / "room1.json").read_text())
    assert set(record) == {"edits", "deletedMessages", "messageOrder", "saveTime", "version"}
    assert record["deletedMessages"] == ["b"]
    assert record["version"] == "1.0"


def test_rooms_are_independent(store):
    store.save("room1", EditOverlay().with_edit("a", "x"))
    assert store.load("room2") == EditOverlay()


def test_corrupt_json_fails_open(store, tmp_path, caplog):
    (tmp_path / "overlays" / "room1.json").write_text("{not json")
    assert store.load("room1") == EditOverlay()
    assert "room1" in caplog.text


def test_invalid_shape_fails_open(store, tmp_path):
    (tmp_path / "overlays" / "room1.json").write_text(json.dumps({"edits": ["a"]}))
    assert store.load("room1") == EditOverlay()


def test_partial_record_fills_defaults(store, tmp_path):
    (tmp_path / "overlays" / "room1.json").write_text(json.dumps({"deletedMessages": ["x"]}))
    loaded = store.load("room1")
    assert loaded.deleted_ids == {"x"}
    assert loaded.edits == {}
    assert loaded.order == ()


def test_invalid_room_id_rejected(store):
    with pytest.raises(ValueError):
        store.load("")
    with pytest.raises(ValueError):
        store.save("../escape", EditOverlay())


def test_delete(store):
    store.save("room1", EditOverlay())
    assert store.delete("room1") is True
    assert store.delete("room1") is False


# ── RoomSettingsStore ────────────────────────────────────────


def test_settings_default(settings_store):
    assert settings_store.load("room1") == RoomSettings()


def test_settings_roundtrip(settings_store):
    settings = RoomSettings(chapters=[ChapterMarker(id="ch1", position=2, title="Act I")])
    settings_store.save("room1", settings)
    loaded = settings_store.load("room1")
    assert loaded.chapters[0].title == "Act I"
    assert loaded.chapters[0].position == 2


def test_settings_corrupt_fails_open(settings_store, tmp_path):
    (tmp_path / "settings" / "room1.json").write_text("[]")
    assert settings_store.load("room1") == RoomSettings()


# ── merge_settings ───────────────────────────────────────────


def test_merge_background_partial():
    merged = merge_settings(RoomSettings(), {"pageBackground": {"type": "solid", "color1": "#000"}})
    assert merged.page_background.type == "solid"
    assert merged.page_background.color1 == "#000"
    assert merged.page_background.color2 == "#764ba2"


def test_merge_channels_replaced_wholesale():
    merged = merge_settings(RoomSettings(), {"channels": {"ooc": {"name": "Out of character"}}})
    assert list(merged.channels) == ["ooc"]


def test_merge_rejects_no_channels():
    with pytest.raises(ValueError):
        merge_settings(RoomSettings(), {"channels": {}})


def test_merge_characters_key_by_key():
    current = merge_settings(RoomSettings(), {"characters": {"Aldric": {"color": "#f00"}}})
    merged = merge_settings(current, {"characters": {"Kira": {"iconUrl": "k.png"}}})
    assert merged.characters["Aldric"].color == "#f00"
    assert merged.characters["Kira"].icon_url == "k.png"
    cleared = merge_settings(merged, {"characters": {"Aldric": None}})
    assert "Aldric" not in cleared.characters


def test_merge_invalid_value_raises():
    with pytest.raises(ValueError):
        merge_settings(RoomSettings(), {"logContainer": {"opacity": 7}})
