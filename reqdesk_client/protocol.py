# =============================================================================
# Reqdesk Client -- Wire Protocol Codec
# =============================================================================
#
# Frames are JSON objects in text websocket messages.
#
# Outgoing (client -> server):
#   {"type": "heartbeat"}          liveness ping
#   {"type": "MARK_ALL_AS_READ"}   server-side bulk read
#   {"message": "<text>"}          chat send, no type field
#
# Incoming (server -> client):
#   control: heartbeat, connection_success, ALL_READ_SUCCESS
#   notification: {"id"?, "title"?, "message", "type"?, "created_at"?}
#   chat: {"message", "sender"?, "is_provider"?}
# =============================================================================

from __future__ import annotations

import json
import time

from uuid import uuid4
from datetime import UTC, datetime
from typing import Any

from ._logging import logger
from .constants import (
    DEFAULT_NOTIFICATION_TITLE,
    FRAME_HEARTBEAT,
    FRAME_MARK_ALL_AS_READ,
    MAX_MESSAGE_SIZE,
)
from .errors import ChannelProtocolError
from .types import ChatMessageRecord, NotificationCategory, NotificationRecord

try:
    import orjson

    def _json_loads(data: str | bytes) -> Any:
        return orjson.loads(data)

    def _json_dumps(obj: Any) -> str:
        return orjson.dumps(obj).decode()

except ImportError:

    def _json_loads(data: str | bytes) -> Any:
        return json.loads(data)

    def _json_dumps(obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))


_CATEGORIES = {c.value: c for c in NotificationCategory}


class FrameCodec:
    """Encode outbound frames and decode inbound ones.

    Args:
        max_message_size: Inbound frames larger than this many bytes are
            rejected before parsing.
    """

    def __init__(self, max_message_size: int = MAX_MESSAGE_SIZE) -> None:
        self._max_message_size = max_message_size

    def encode(self, payload: dict[str, Any]) -> str:
        return _json_dumps(payload)

    def decode(self, data: str | bytes) -> dict[str, Any]:
        """Parse one inbound frame into a dict.

        Raises:
            ChannelProtocolError: If the frame is oversized, not UTF-8,
                not JSON, or not a JSON object.
        """
        size = len(data) if isinstance(data, bytes) else len(data.encode("utf-8", "replace"))
        if size > self._max_message_size:
            raise ChannelProtocolError(
                f"frame exceeds max size ({size} > {self._max_message_size} bytes)"
            )
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ChannelProtocolError(f"binary frame is not UTF-8: {exc}") from exc

        try:
            parsed = _json_loads(data)
        except ValueError as exc:
            # json.JSONDecodeError and orjson.JSONDecodeError both subclass ValueError
            raise ChannelProtocolError(f"frame is not valid JSON: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ChannelProtocolError(
                f"frame must be a JSON object, got {type(parsed).__name__}"
            )
        return parsed


# -- Outbound frames ------------------------------------------------------------


def heartbeat_frame() -> dict[str, Any]:
    return {"type": FRAME_HEARTBEAT}


def mark_all_read_frame() -> dict[str, Any]:
    return {"type": FRAME_MARK_ALL_AS_READ}


def chat_frame(text: str) -> dict[str, Any]:
    return {"message": text}


# -- Inbound records ------------------------------------------------------------


def frame_type(frame: dict[str, Any]) -> str | None:
    t = frame.get("type")
    return t if isinstance(t, str) else None


def synthesize_id() -> str:
    """Client-side id for frames the server sent without one."""
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 server timestamp, ``None`` if absent or invalid."""
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable timestamp %r, using receipt time", value)
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def _require_message(frame: dict[str, Any]) -> str:
    message = frame.get("message")
    if not isinstance(message, str):
        raise ChannelProtocolError("frame has no 'message' text")
    return message


def notification_from_frame(frame: dict[str, Any]) -> NotificationRecord:
    """Build a :class:`NotificationRecord` from a domain frame.

    Raises:
        ChannelProtocolError: If the frame has no ``message`` string.
    """
    message = _require_message(frame)

    record_id = frame.get("id")
    if isinstance(record_id, bool) or not isinstance(record_id, (str, int)) or record_id == "":
        record_id = synthesize_id()

    title = frame.get("title")
    t = frame_type(frame)

    return NotificationRecord(
        id=record_id,
        message=message,
        title=title if isinstance(title, str) and title else DEFAULT_NOTIFICATION_TITLE,
        category=_CATEGORIES.get(t or "", NotificationCategory.INFO),
        created_at=parse_timestamp(frame.get("created_at")) or datetime.now(UTC),
        event_type=t,
    )


def chat_message_from_frame(
    frame: dict[str, Any], conversation_id: str
) -> ChatMessageRecord:
    """Build a :class:`ChatMessageRecord` from a chat frame.

    Raises:
        ChannelProtocolError: If the frame has no ``message`` string.
    """
    message = _require_message(frame)
    sender = frame.get("sender")
    return ChatMessageRecord(
        conversation_id=conversation_id,
        message=message,
        created_at=parse_timestamp(frame.get("created_at")) or datetime.now(UTC),
        sender=str(sender) if sender is not None else None,
        is_provider=frame.get("is_provider") is True,
    )
