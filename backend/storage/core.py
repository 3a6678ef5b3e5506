"""Storage initialization, data-dir paths, and store accessors."""

from pathlib import Path

from trpg_log.library import RoomLibrary
from trpg_log.overlay import JsonOverlayStore
from trpg_log.settings import RoomSettingsStore

_data_dir: Path | None = None


def init_storage(data_dir: Path) -> None:
    global _data_dir
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    overlays_dir().mkdir(exist_ok=True)
    settings_dir().mkdir(exist_ok=True)
    rooms_dir().mkdir(exist_ok=True)


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def overlays_dir() -> Path:
    return data_dir() / "overlays"


def settings_dir() -> Path:
    return data_dir() / "settings"


def rooms_dir() -> Path:
    return data_dir() / "rooms"


def overlay_store() -> JsonOverlayStore:
    return JsonOverlayStore(overlays_dir())


def settings_store() -> RoomSettingsStore:
    return RoomSettingsStore(settings_dir())


def room_library() -> RoomLibrary:
    return RoomLibrary(rooms_dir())
