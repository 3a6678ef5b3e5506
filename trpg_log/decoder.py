"""Decode remote typed-value documents into NormalizedMessage values.

The remote store wraps every scalar in an explicit type tag and nests maps
under ``mapValue.fields``:

    {
      "name": "projects/p/databases/(default)/documents/rooms/R/messages/M1",
      "createTime": "2024-03-01T19:02:11.512345Z",
      "updateTime": "2024-03-01T19:02:11.512345Z",
      "fields": {
        "name":  {"stringValue": "Aldric"},
        "text":  {"stringValue": "I open the door."},
        "extend": {"mapValue": {"fields": {
          "roll": {"mapValue": {"fields": {
            "result":  {"stringValue": "1D100<=50 > 23 > Success"},
            "success": {"booleanValue": true}
          }}}
        }}}
      }
    }

Decoding is tolerant: only a missing id or createTime raises DecodeError.
Every other absent field degrades to a default.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from .models import Character, DiceResult, NormalizedMessage

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#666"
DEFAULT_NAME = "Unknown"

_FRACTION_RE = re.compile(r"\.(\d+)")


class DecodeError(ValueError):
    """Raised when a document's id or createTime cannot be derived."""


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as sent by the remote store.

    Accepts a trailing ``Z`` and fractional seconds of any precision (the
    store sends up to nanoseconds). Naive values are taken as UTC.
    Raises ValueError if the value cannot be parsed.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def message_id(name: Any) -> str:
    """Last segment of a document resource path."""
    if not isinstance(name, str):
        raise DecodeError("Document has no resource name")
    segment = name.split("/")[-1].strip()
    if not segment:
        raise DecodeError(f"Cannot derive message id from {name!r}")
    return segment


def unwrap_value(typed: Any) -> Any:
    """Convert one typed value to plain Python. Unknown tags yield None."""
    if not isinstance(typed, dict):
        return None
    if "stringValue" in typed:
        return typed["stringValue"]
    if "booleanValue" in typed:
        return typed["booleanValue"] is True
    if "integerValue" in typed:
        # int64 values arrive as strings
        try:
            return int(typed["integerValue"])
        except (TypeError, ValueError):
            return None
    if "doubleValue" in typed:
        try:
            return float(typed["doubleValue"])
        except (TypeError, ValueError):
            return None
    if "timestampValue" in typed:
        return typed["timestampValue"]
    if "mapValue" in typed:
        fields = (typed["mapValue"] or {}).get("fields") or {}
        return {key: unwrap_value(value) for key, value in fields.items()}
    if "arrayValue" in typed:
        values = (typed["arrayValue"] or {}).get("values") or []
        return [unwrap_value(value) for value in values]
    return None


def _string(fields: dict, key: str) -> str | None:
    value = unwrap_value(fields.get(key))
    return value if isinstance(value, str) else None


def _boolean(fields: dict, key: str) -> bool:
    return unwrap_value(fields.get(key)) is True


def _map_fields(fields: dict, key: str) -> dict | None:
    typed = fields.get(key)
    if not isinstance(typed, dict) or not isinstance(typed.get("mapValue"), dict):
        return None
    inner = typed["mapValue"].get("fields")
    return inner if isinstance(inner, dict) else {}


def _dice_result(fields: dict) -> DiceResult | None:
    extend = _map_fields(fields, "extend")
    if extend is None:
        return None
    roll = _map_fields(extend, "roll")
    if roll is None:
        return None
    return DiceResult(
        result=_string(roll, "result"),
        success=_boolean(roll, "success"),
        critical=_boolean(roll, "critical"),
        fumble=_boolean(roll, "fumble"),
    )


def decode_message(raw: dict[str, Any]) -> NormalizedMessage:
    """Decode one remote document. Pure; raises DecodeError only for id/createTime."""
    if not isinstance(raw, dict):
        raise DecodeError("Document is not an object")
    msg_id = message_id(raw.get("name"))

    create_time = raw.get("createTime")
    if not isinstance(create_time, str) or not create_time.strip():
        raise DecodeError(f"Message {msg_id} has no createTime")
    try:
        parse_timestamp(create_time)
    except ValueError as e:
        raise DecodeError(f"Message {msg_id} has an unreadable createTime: {create_time!r}") from e

    update_time = raw.get("updateTime")
    if not isinstance(update_time, str) or not update_time:
        update_time = create_time

    fields = raw.get("fields")
    if not isinstance(fields, dict):
        fields = {}

    return NormalizedMessage(
        id=msg_id,
        create_time=create_time,
        update_time=update_time,
        character=Character(
            name=_string(fields, "name") or DEFAULT_NAME,
            color=_string(fields, "color") or DEFAULT_COLOR,
            icon_url=_string(fields, "iconUrl") or None,
            from_=_string(fields, "from"),
        ),
        text=_string(fields, "text") or "",
        channel=_string(fields, "channelName") or None,
        is_private=bool(_string(fields, "to")),
        dice_result=_dice_result(fields),
        type=_string(fields, "type"),
        edited=_boolean(fields, "edited"),
    )


def decode_documents(documents: list[dict[str, Any]]) -> list[NormalizedMessage]:
    """Decode a fetched log, keeping input order.

    Undecodable documents and repeated ids are logged and skipped so that one
    bad entry never blocks the rest of the room.
    """
    messages: list[NormalizedMessage] = []
    seen: set[str] = set()
    for raw in documents:
        try:
            message = decode_message(raw)
        except DecodeError as e:
            logger.warning("Skipping undecodable document: %s", e)
            continue
        if message.id in seen:
            logger.warning("Skipping duplicate message id %s", message.id)
            continue
        seen.add(message.id)
        messages.append(message)
    return messages
