# =============================================================================
# Reqdesk Client -- Channel Facades
# =============================================================================
#
# Public API consumed by the UI layer.  Wires connection, heartbeat,
# reconnection and dispatcher together and exposes state snapshots.
# =============================================================================

from __future__ import annotations

from typing import Any

from ._logging import logger
from .config import ChannelSettings, notifications_path
from .connection import ChannelConnection, Connector
from .constants import WS_CLOSE_NORMAL
from .dispatcher import NotificationDispatcher
from .heartbeat import HeartbeatMonitor
from .protocol import FrameCodec, mark_all_read_frame
from .reconnect import ReconnectionPolicy
from .store import NotificationStore, RecordListener
from .types import (
    ChannelStats,
    ConnectionState,
    MarkAllReadStrategy,
    NotificationRecord,
)


class RealtimeChannel:
    """Connection, heartbeat and reconnection around one endpoint path.

    Subclasses provide :meth:`_path` and attach a dispatcher to the
    connection's ``message`` signal.

    Args:
        settings: Deployment mode, hosts and timings.  Defaults to local
            development settings.
        heartbeat: Send heartbeat frames while open.
        connector: Socket factory override, see :class:`ChannelConnection`.
    """

    def __init__(
        self,
        settings: ChannelSettings | None = None,
        *,
        heartbeat: bool = True,
        connector: Connector | None = None,
    ) -> None:
        self._settings = settings or ChannelSettings()
        self.stats = ChannelStats()
        self._codec = FrameCodec(self._settings.max_message_size)

        self._connection = ChannelConnection(self._settings, connector=connector)
        self._heartbeat: HeartbeatMonitor | None = None
        if heartbeat:
            self._heartbeat = HeartbeatMonitor(
                self._connection, self._settings.heartbeat_interval
            )
        self._reconnect = ReconnectionPolicy(self._connection, self._settings.reconnect)

        self._connection.add_handler("open", self._on_open)

    # -- Context manager ------------------------------------------------------

    async def __aenter__(self) -> RealtimeChannel:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    # -- Properties -----------------------------------------------------------

    @property
    def connection(self) -> ChannelConnection:
        return self._connection

    @property
    def heartbeat(self) -> HeartbeatMonitor | None:
        return self._heartbeat

    @property
    def reconnect_policy(self) -> ReconnectionPolicy:
        return self._reconnect

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def is_connected(self) -> bool:
        return self._connection.is_open

    # -- Connect / Disconnect -------------------------------------------------

    def connect(self, token: str | None) -> bool:
        """Start connecting with *token*.  Empty tokens are ignored.

        Returns True if a connection attempt was started.
        """
        if not token:
            logger.debug("connect() skipped: no token")
            return False
        return self._connection.open(token, self._path())

    async def disconnect(self) -> None:
        """Tear down: cancel retry, stop heartbeat, close, release."""
        self._reconnect.cancel()
        if self._heartbeat is not None:
            self._heartbeat.stop()
        self._connection.close(WS_CLOSE_NORMAL, "Client disconnect")
        await self._connection.wait_closed()

    def update_token(self, token: str | None) -> None:
        """Swap the token used by future reconnects.

        An empty token (logout) cancels any pending retry and prevents
        further ones.  An open socket is left alone; call
        :meth:`disconnect` to drop it too.
        """
        self._connection.set_token(token)
        if not token:
            self._reconnect.cancel()

    # -- Internal -------------------------------------------------------------

    def _path(self) -> str:
        raise NotImplementedError

    def _on_open(self) -> None:
        self.stats.opens += 1

    async def _send(self, payload: dict[str, Any]) -> bool:
        ok = await self._connection.send(payload)
        if ok:
            self.stats.frames_sent += 1
        return ok


class NotificationChannel(RealtimeChannel):
    """Live notification feed for the signed-in user.

    Args:
        settings: See :class:`RealtimeChannel`.
        strategy: How :meth:`mark_all_as_read` works.  ``SERVER`` (default)
            sends ``MARK_ALL_AS_READ`` and waits for ``ALL_READ_SUCCESS``;
            ``LOCAL`` flips the records immediately.
        max_notifications: Optional cap, oldest records evicted first.
        heartbeat: Send heartbeat frames while open.
        connector: Socket factory override.

    Example::

        channel = NotificationChannel(ChannelSettings.from_env())
        channel.connect(token)

        @channel.on_notification
        def show(record):
            print(record.title, record.message)
    """

    def __init__(
        self,
        settings: ChannelSettings | None = None,
        *,
        strategy: MarkAllReadStrategy | str = MarkAllReadStrategy.SERVER,
        max_notifications: int | None = None,
        heartbeat: bool = True,
        connector: Connector | None = None,
    ) -> None:
        super().__init__(settings, heartbeat=heartbeat, connector=connector)
        self._strategy = MarkAllReadStrategy(strategy)
        self._store = NotificationStore(max_size=max_notifications)
        self._dispatcher = NotificationDispatcher(self._store, self._codec, self.stats)
        self._connection.add_handler("message", self._dispatcher.handle_raw)

    # -- Properties -----------------------------------------------------------

    @property
    def store(self) -> NotificationStore:
        return self._store

    @property
    def strategy(self) -> MarkAllReadStrategy:
        return self._strategy

    @property
    def notifications(self) -> list[NotificationRecord]:
        return self._store.records

    @property
    def unread_count(self) -> int:
        return self._store.unread_count

    @property
    def total_count(self) -> int:
        return self._store.total_count

    def unread(self) -> list[NotificationRecord]:
        return self._store.unread()

    # -- Mutations ------------------------------------------------------------

    def mark_as_read(self, notification_id: str | int) -> bool:
        return self._store.mark_read(notification_id)

    async def mark_all_as_read(self) -> bool:
        """Mark everything read using the configured strategy.

        Returns True if the local flip happened or the server request was
        sent.  With the server strategy the records stay unread until the
        confirmation frame arrives.
        """
        if self._strategy == MarkAllReadStrategy.LOCAL:
            self._store.mark_all_read()
            return True

        ok = await self._send(mark_all_read_frame())
        if not ok:
            logger.debug("MARK_ALL_AS_READ not sent: channel is %s", self.state.value)
        return ok

    def clear_notifications(self) -> None:
        self._store.clear()

    def on_notification(self, fn: RecordListener) -> RecordListener:
        """Register *fn* for every new notification.  Usable as a decorator."""
        self._store.add_listener(fn)
        return fn

    def _path(self) -> str:
        return notifications_path()
