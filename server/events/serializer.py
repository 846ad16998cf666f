"""
Event Serializer

Converts between Python dicts and the JSON strings mirrored to Redis.
Operates on plain dicts; callers turn models into dicts before handing off.

Wire format (envelope):
  {
    "channel": "events:article",
    "data": { ...event fields... }
  }

Datetimes go out as ISO-8601, enums (impact level, bias) as their value.
"""
from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any


class SerializationError(Exception):
    """Raised when serialization or deserialization fails."""


def _encode(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def serialize(channel: str, data: dict[str, Any]) -> str:
    """
    Encode a channel name and data dict into a JSON string.

    Raises SerializationError for values the encoder does not know.
    """
    try:
        return json.dumps({"channel": channel, "data": data}, default=_encode)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode event for {channel}: {exc}") from exc


def deserialize(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """Decode a mirrored message back into (channel, data)."""
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SerializationError(f"Invalid event JSON: {exc}") from exc

    if not isinstance(envelope, dict) or not {"channel", "data"} <= envelope.keys():
        raise SerializationError("Event envelope must be an object with channel and data")
    if not isinstance(envelope["data"], dict):
        raise SerializationError(f"Event data on {envelope['channel']} is not an object")

    return envelope["channel"], envelope["data"]
