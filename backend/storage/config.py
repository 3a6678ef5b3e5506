"""Global viewer configuration (fonts, background, default room)."""

import json
from pathlib import Path
from typing import Any

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "fixed_room": "",
    "font_family": "'Segoe UI', Tahoma, sans-serif",
    "font_size": "16px",
    "character_name_size": "16px",
    "background": {
        "type": "gradient",
        "color1": "#667eea",
        "color2": "#764ba2",
    },
}


def _config_path() -> Path:
    return data_dir() / "config.json"


def _defaults() -> dict[str, Any]:
    return json.loads(json.dumps(_CONFIG_DEFAULTS))


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        for key in ("fixed_room", "font_family", "font_size", "character_name_size"):
            if key in stored:
                config[key] = stored[key]
        if isinstance(stored.get("background"), dict):
            config["background"].update(stored["background"])
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Scalars are overwritten, background is merged key by key, unknown keys
    are dropped.
    """
    config = get_config()
    for key in ("fixed_room", "font_family", "font_size", "character_name_size"):
        if key in fields:
            config[key] = fields[key]
    if isinstance(fields.get("background"), dict):
        config["background"].update(fields["background"])
    if config["background"].get("type") not in ("gradient", "solid"):
        raise ValueError("background.type must be 'gradient' or 'solid'")
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def reset_config() -> dict[str, Any]:
    """Drop stored values and return the defaults."""
    path = _config_path()
    if path.is_file():
        path.unlink()
    return _defaults()
