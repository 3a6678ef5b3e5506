"""Process-local registry of open rooms.

One RoomSession per room id. Loading a room again replaces its session, so
there is always exactly one owner of a room's overlay in this process.
"""

import logging
import os

from trpg_log.fetcher import DEFAULT_BASE_URL, DEFAULT_PAGE_SIZE, RemoteFetcher
from trpg_log.session import RoomSession

from backend import storage

logger = logging.getLogger(__name__)

_sessions: dict[str, RoomSession] = {}


def make_fetcher() -> RemoteFetcher:
    """RemoteFetcher configured from TRPG_REMOTE_URL / TRPG_PAGE_SIZE."""
    return RemoteFetcher(
        base_url=os.getenv("TRPG_REMOTE_URL", DEFAULT_BASE_URL),
        page_size=int(os.getenv("TRPG_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
    )


async def open_room(room_id: str) -> RoomSession:
    session = await RoomSession.open(
        room_id,
        make_fetcher(),
        storage.overlay_store(),
        storage.settings_store(),
    )
    if session.room_id in _sessions:
        logger.info("Reloaded room %s, replacing previous session", session.room_id)
    _sessions[session.room_id] = session
    return session


def get_session(room_id: str) -> RoomSession | None:
    return _sessions.get(room_id)


def close_room(room_id: str) -> bool:
    return _sessions.pop(room_id, None) is not None


def clear() -> None:
    _sessions.clear()
