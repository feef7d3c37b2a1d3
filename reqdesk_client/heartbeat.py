# =============================================================================
# Reqdesk Client -- Heartbeat Monitor
# =============================================================================
#
# Sends {"type": "heartbeat"} every HEARTBEAT_INTERVAL while the channel is
# open so proxies in front of the backend do not drop an idle socket.
# =============================================================================

from __future__ import annotations

import asyncio

from ._logging import logger
from .connection import ChannelConnection
from .protocol import heartbeat_frame
from .types import ConnectionState


class HeartbeatMonitor:
    """Interval pinger bound to one :class:`ChannelConnection`.

    Starts on the connection's ``open`` signal and is cancelled on every
    ``close`` signal, so no timer outlives its socket.
    """

    def __init__(self, connection: ChannelConnection, interval: float) -> None:
        self._connection = connection
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self.beats_sent = 0

        connection.add_handler("open", self._on_open)
        connection.add_handler("close", self._on_close)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._heartbeat_loop())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _on_open(self) -> None:
        self.start()

    def _on_close(self, code: int, reason: str) -> None:
        self.stop()

    async def _heartbeat_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                return

            if self._connection.state != ConnectionState.OPEN:
                logger.debug("Heartbeat skipped: connection is %s", self._connection.state.value)
                continue

            if await self._connection.send(heartbeat_frame()):
                self.beats_sent += 1
            else:
                logger.debug("Heartbeat send failed")
