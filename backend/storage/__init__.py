"""File-based JSON storage for local customisations and published rooms.

Data layout:
  data/
    config.json             Global viewer config (fonts, background, default room)
    overlays/<room>.json    Edit overlay per remote room
                            {edits, deletedMessages, messageOrder, saveTime, version}
    settings/<room>.json    Per-room appearance settings + chapter markers
    rooms/
      rooms.json            Manifest of published rooms
      <id>-edited.json      Published edited-room snapshot

The remote message log itself is never stored: it is re-fetched every time
a room is opened.

Config: get_config() returns defaults merged with stored values.
update_config() applies partial updates — scalars overwritten, background
merged key by key.
"""

# Re-export all public symbols so `from backend import storage` keeps working.

from .core import (  # noqa: F401
    data_dir,
    init_storage,
    overlay_store,
    overlays_dir,
    room_library,
    rooms_dir,
    settings_dir,
    settings_store,
)

from .config import (  # noqa: F401
    get_config,
    reset_config,
    update_config,
)
