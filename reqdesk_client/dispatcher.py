# =============================================================================
# Reqdesk Client -- Event Dispatcher
# =============================================================================
#
# Decodes each inbound frame, consumes control frames, and routes everything
# else to a notification store or a chat message log.  Frames are handled
# synchronously in arrival order; a bad frame is logged and dropped without
# touching the connection.
# =============================================================================

from __future__ import annotations

from typing import Any, Callable

from ._logging import logger
from .constants import (
    FRAME_ALL_READ_SUCCESS,
    FRAME_CONNECTION_SUCCESS,
    FRAME_HEARTBEAT,
)
from .errors import ChannelProtocolError
from .protocol import (
    FrameCodec,
    chat_message_from_frame,
    frame_type,
    notification_from_frame,
)
from .store import MessageLog, NotificationStore
from .types import ChannelStats

Frame = dict[str, Any]


class EventDispatcher:
    """Base dispatcher: decode, drop control frames, route domain frames.

    Subclasses extend ``_control_handlers`` and implement
    :meth:`_handle_domain`.
    """

    def __init__(self, codec: FrameCodec, stats: ChannelStats | None = None) -> None:
        self._codec = codec
        self.stats = stats or ChannelStats()

        # Control handler dispatch table (dict lookup = O(1))
        self._control_handlers: dict[str, Callable[[Frame], None]] = {
            FRAME_HEARTBEAT: self._discard,
            FRAME_CONNECTION_SUCCESS: self._discard,
        }

    def handle_raw(self, raw: str | bytes) -> None:
        """``message`` signal handler for a :class:`ChannelConnection`."""
        self.stats.frames_received += 1
        try:
            frame = self._codec.decode(raw)
            self.dispatch(frame)
        except ChannelProtocolError as exc:
            self.stats.frames_dropped += 1
            logger.warning("Dropping malformed frame: %s", exc)

    def dispatch(self, frame: Frame) -> None:
        handler = self._control_handlers.get(frame_type(frame) or "")
        if handler is not None:
            handler(frame)
            return
        self._handle_domain(frame)

    def _discard(self, frame: Frame) -> None:
        logger.debug("Control frame consumed: %s", frame_type(frame))

    def _handle_domain(self, frame: Frame) -> None:
        raise NotImplementedError


class NotificationDispatcher(EventDispatcher):
    """Routes notification frames into a :class:`NotificationStore`.

    ``ALL_READ_SUCCESS`` is the server's confirmation of a
    ``MARK_ALL_AS_READ`` request and flips every record to read.
    """

    def __init__(
        self,
        store: NotificationStore,
        codec: FrameCodec,
        stats: ChannelStats | None = None,
    ) -> None:
        super().__init__(codec, stats)
        self._store = store
        self._control_handlers[FRAME_ALL_READ_SUCCESS] = self._handle_all_read

    def _handle_all_read(self, frame: Frame) -> None:
        changed = self._store.mark_all_read()
        logger.debug("Server confirmed mark-all-read (%d changed)", changed)

    def _handle_domain(self, frame: Frame) -> None:
        self._store.add(notification_from_frame(frame))


class ChatDispatcher(EventDispatcher):
    """Appends chat frames to the current conversation's :class:`MessageLog`."""

    def __init__(
        self,
        log: MessageLog,
        codec: FrameCodec,
        stats: ChannelStats | None = None,
    ) -> None:
        super().__init__(codec, stats)
        self.log = log

    def _handle_domain(self, frame: Frame) -> None:
        self.log.append(chat_message_from_frame(frame, self.log.conversation_id))
