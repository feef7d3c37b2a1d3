# =============================================================================
# Reqdesk Client -- Chat Channel
# =============================================================================
#
# One websocket per service-request conversation (/ws/chat/<id>/).  Messages
# are appended in arrival order.  Switching conversation closes the old
# socket before the new one is opened; connections are never multiplexed.
# =============================================================================

from __future__ import annotations

from ._logging import logger
from .channel import RealtimeChannel
from .config import ChannelSettings, chat_path
from .connection import Connector
from .dispatcher import ChatDispatcher
from .protocol import chat_frame
from .store import MessageLog, RecordListener
from .types import ChatMessageRecord


class ChatChannel(RealtimeChannel):
    """Chat between a customer and a provider about one service request.

    Args:
        conversation_id: Service-request id the conversation belongs to.
        settings: See :class:`RealtimeChannel`.
        heartbeat: Send heartbeat frames while open.  Off by default; the
            chat consumer does not expect them.
        connector: Socket factory override.
    """

    def __init__(
        self,
        conversation_id: str | int,
        settings: ChannelSettings | None = None,
        *,
        heartbeat: bool = False,
        connector: Connector | None = None,
    ) -> None:
        super().__init__(settings, heartbeat=heartbeat, connector=connector)
        self._conversation_id = str(conversation_id)
        chat_path(self._conversation_id)  # validates the id early
        self._listeners: list[RecordListener] = []
        self._log = MessageLog(self._conversation_id)
        self._dispatcher = ChatDispatcher(self._log, self._codec, self.stats)
        self._connection.add_handler("message", self._dispatcher.handle_raw)

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def messages(self) -> list[ChatMessageRecord]:
        return self._log.messages

    async def send_message(self, text: str) -> bool:
        """Send *text* to the conversation.

        Returns False for blank text or when the channel is not open; the
        message is not queued.
        """
        if not text or not text.strip():
            return False
        return await self._send(chat_frame(text))

    async def switch_conversation(self, conversation_id: str | int) -> None:
        """Close the current conversation and open *conversation_id*.

        The message log starts empty for the new conversation.  The
        connection is reopened with the last token if one is set.
        """
        new_id = str(conversation_id)
        if new_id == self._conversation_id:
            return
        chat_path(new_id)

        token = self._connection.token
        await self.disconnect()

        logger.info("Switching chat %s -> %s", self._conversation_id, new_id)
        self._conversation_id = new_id
        self._log = MessageLog(new_id)
        for fn in self._listeners:
            self._log.add_listener(fn)
        self._dispatcher.log = self._log

        if token:
            self.connect(token)

    def on_message(self, fn: RecordListener) -> RecordListener:
        """Register *fn* for every incoming chat message.  Usable as a decorator."""
        self._listeners.append(fn)
        self._log.add_listener(fn)
        return fn

    def _path(self) -> str:
        return chat_path(self._conversation_id)
