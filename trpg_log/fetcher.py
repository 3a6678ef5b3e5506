"""Remote log reader — paginated HTTP access to a room's message documents.

The remote store is a Firestore-style REST API:

    GET {base_url}/rooms/{room_id}/messages?pageSize=300&pageToken=...
    → {"documents": [...], "nextPageToken": "..."}

RemoteFetcher.fetch_all() follows nextPageToken until the store stops sending
one. Aggregation is all-or-nothing: any failed page raises FetchError and
nothing accumulated so far is returned.

The result is sorted ascending by createTime with a stable sort, so messages
sharing a timestamp keep the order the server sent them in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from .decoder import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = (
    "https://firestore.googleapis.com/v1/projects/ccfolia-160aa/databases/(default)/documents"
)
DEFAULT_PAGE_SIZE = 300

ProgressHook = Callable[[int], None]

_UNPARSEABLE = datetime.min.replace(tzinfo=timezone.utc)


class FetchError(RuntimeError):
    """Raised when any page of a room cannot be fetched.

    ``status`` is the HTTP status of the failed response, or None for
    transport failures (refused connection, timeout, malformed body).
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def _create_time_key(document: dict[str, Any]) -> tuple[int, datetime]:
    # documents without a readable createTime go last, in server order
    try:
        return (0, parse_timestamp(document["createTime"]))
    except (KeyError, TypeError, AttributeError, ValueError):
        return (1, _UNPARSEABLE)


class RemoteFetcher:
    """Async reader for room message logs.

    Args:
        base_url:  Documents root of the remote store.
        page_size: Documents requested per page.
        timeout:   HTTP timeout in seconds, per page.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._timeout = timeout

    def messages_url(self, room_id: str) -> str:
        return f"{self._base_url}/rooms/{room_id}/messages"

    async def _fetch_page(
        self, client: httpx.AsyncClient, url: str, page_token: str
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"pageSize": self._page_size}
        if page_token:
            params["pageToken"] = page_token

        try:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(f"Remote store returned HTTP {status}", status=status) from e
        except httpx.TimeoutException as e:
            raise FetchError(f"Remote store timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Cannot reach remote store at {self._base_url}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError("Remote store returned a malformed page", status=resp.status_code) from e
        if not isinstance(data, dict):
            raise FetchError("Remote store returned a malformed page", status=resp.status_code)
        return data

    async def fetch_all(
        self, room_id: str, on_progress: ProgressHook | None = None
    ) -> list[dict[str, Any]]:
        """Fetch every message document of a room.

        ``on_progress`` is called with the running document count after each
        non-empty page. It has no effect on the result.
        """
        room_id = (room_id or "").strip()
        if not room_id:
            raise ValueError("Room id is required")

        url = self.messages_url(room_id)
        documents: list[dict[str, Any]] = []
        page_token = ""
        pages = 0

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            while True:
                page = await self._fetch_page(client, url, page_token)
                pages += 1
                batch = page.get("documents") or []
                if batch:
                    documents.extend(batch)
                    logger.debug("room=%s page=%d fetched=%d", room_id, pages, len(documents))
                    if on_progress is not None:
                        on_progress(len(documents))
                page_token = page.get("nextPageToken") or ""
                if not page_token:
                    break

        documents.sort(key=_create_time_key)
        logger.info("Fetched %d documents for room %s in %d pages", len(documents), room_id, pages)
        return documents
