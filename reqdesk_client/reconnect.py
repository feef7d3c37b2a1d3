# =============================================================================
# Reqdesk Client -- Reconnection Policy
# =============================================================================
#
# IDLE -> (unexpected close) -> PENDING -> (timer) -> CONNECTING -> (open) -> IDLE
# IDLE -> (client close) -> IDLE
#
# A failed attempt closes again, which re-enters PENDING: an implicit retry
# loop that runs until the owner tears down, the token is dropped, or
# max_attempts is reached.
# =============================================================================

from __future__ import annotations

import asyncio

from ._logging import logger
from .connection import ChannelConnection
from .constants import (
    WS_CLOSE_AUTH_EXPIRED,
    WS_CLOSE_AUTH_FAILED,
    WS_CLOSE_POLICY_VIOLATION,
)
from .types import ReconnectConfig, ReconnectMode, ReconnectState

_AUTH_CLOSE_CODES = frozenset(
    {WS_CLOSE_AUTH_FAILED, WS_CLOSE_AUTH_EXPIRED, WS_CLOSE_POLICY_VIOLATION}
)


class ReconnectionPolicy:
    """Schedules a delayed ``open()`` after a connection drops on its own.

    Args:
        connection: The connection to watch and reopen.
        config: Delay strategy and attempt limit.
    """

    def __init__(
        self, connection: ChannelConnection, config: ReconnectConfig | None = None
    ) -> None:
        self._connection = connection
        self._config = config or ReconnectConfig()
        self._state = ReconnectState.IDLE
        self._attempts = 0
        self._task: asyncio.Task[None] | None = None

        connection.add_handler("open", self._on_open)
        connection.add_handler("close", self._on_close)

    @property
    def state(self) -> ReconnectState:
        return self._state

    @property
    def attempts(self) -> int:
        """Consecutive attempts since the last successful open."""
        return self._attempts

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Drop any pending retry (teardown, logout, conversation switch)."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._state = ReconnectState.IDLE

    def next_delay(self) -> float:
        cfg = self._config
        if cfg.mode == ReconnectMode.EXPONENTIAL:
            return min(cfg.delay * (cfg.factor**self._attempts), cfg.max_delay)
        return cfg.delay

    # -- Signal handlers ------------------------------------------------------

    def _on_open(self) -> None:
        self._attempts = 0
        self._state = ReconnectState.IDLE

    def _on_close(self, code: int, reason: str) -> None:
        if self._connection.closed_by_client:
            logger.debug("Close was client-initiated, not reconnecting")
            self.cancel()
            return

        if code in _AUTH_CLOSE_CODES:
            logger.error("Auth/policy failure (code %d): %s", code, reason)
            self._connection.forget_token()
            self.cancel()
            return

        if not self._connection.token:
            logger.debug("No token, not reconnecting")
            self._state = ReconnectState.IDLE
            return

        cfg = self._config
        if cfg.max_attempts >= 0 and self._attempts >= cfg.max_attempts:
            logger.error("Max reconnect attempts (%d) reached", cfg.max_attempts)
            self._state = ReconnectState.IDLE
            return

        self._schedule()

    # -- Internal -------------------------------------------------------------

    def _schedule(self) -> None:
        if self.pending:
            return

        delay = self.next_delay()
        cfg = self._config
        logger.info(
            "Reconnecting in %.1fs (attempt %d/%s)",
            delay,
            self._attempts + 1,
            cfg.max_attempts if cfg.max_attempts >= 0 else "inf",
        )
        self._state = ReconnectState.PENDING
        self._task = asyncio.get_running_loop().create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return

        self._task = None
        if self._connection.closed_by_client:
            logger.debug("Connection closed by client while waiting, reconnect abandoned")
            self._state = ReconnectState.IDLE
            return

        token = self._connection.token
        path = self._connection.path
        if not token or path is None:
            logger.debug("Token cleared while waiting, reconnect abandoned")
            self._state = ReconnectState.IDLE
            return

        self._attempts += 1
        self._state = ReconnectState.CONNECTING
        if not self._connection.open(token, path):
            self._state = ReconnectState.IDLE
