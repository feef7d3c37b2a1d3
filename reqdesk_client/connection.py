# =============================================================================
# Reqdesk Client -- Channel Connection
# =============================================================================
#
# Owns exactly one physical websocket: address, handshake, read loop, close.
# Heartbeat and reconnection live in their own modules and observe this one
# through the open / message / close / error signals.
# =============================================================================

from __future__ import annotations

import asyncio

from typing import Any, Awaitable, Callable

import websockets.asyncio.client
from websockets.exceptions import ConnectionClosed, InvalidStatus

from ._logging import logger
from .config import ChannelSettings, build_endpoint_url
from .constants import WS_CLOSE_ABNORMAL, WS_CLOSE_AUTH_FAILED, WS_CLOSE_NORMAL
from .errors import ChannelConnectionError
from .protocol import FrameCodec
from .types import ConnectionState

Connector = Callable[[str], Awaitable[Any]]
SignalHandler = Callable[..., Any]

SIGNALS = ("open", "message", "close", "error")


class ChannelConnection:
    """Lifecycle of a single websocket to the marketplace backend.

    ``open()`` and ``close()`` return immediately; the handshake and the
    read loop run in a background task.  Observers register for::

        open()                  handshake completed
        message(raw)            one inbound text/binary frame
        close(code, reason)     socket gone, from any cause
        error(exc)              handshake or read loop failure

    Args:
        settings: Deployment mode, hosts and timeouts.
        connector: ``async (url) -> socket`` factory.  Defaults to
            :func:`websockets.asyncio.client.connect`.
    """

    def __init__(
        self,
        settings: ChannelSettings | None = None,
        *,
        connector: Connector | None = None,
    ) -> None:
        self._settings = settings or ChannelSettings()
        self._connector = connector or self._connect_websocket
        self._codec = FrameCodec(self._settings.max_message_size)
        self._handlers: dict[str, list[SignalHandler]] = {s: [] for s in SIGNALS}

        # State
        self._ws: Any | None = None
        self._task: asyncio.Task[None] | None = None
        self._state = ConnectionState.DISCONNECTED
        self._token: str | None = None
        self._path: str | None = None
        self._close_requested = False
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    # -- Properties -----------------------------------------------------------

    @property
    def settings(self) -> ChannelSettings:
        return self._settings

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._ws is not None and self._state == ConnectionState.OPEN

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def closed_by_client(self) -> bool:
        """True once ``close()`` was called for the current connection."""
        return self._close_requested

    # -- Observers ------------------------------------------------------------

    def add_handler(self, signal: str, fn: SignalHandler) -> None:
        if signal not in self._handlers:
            raise ValueError(f"Unknown signal {signal!r}, expected one of {SIGNALS}")
        self._handlers[signal].append(fn)

    def remove_handler(self, signal: str, fn: SignalHandler) -> None:
        handlers = self._handlers.get(signal, [])
        if fn in handlers:
            handlers.remove(fn)

    def on(self, signal: str) -> Callable[[SignalHandler], SignalHandler]:
        """Decorator form of :meth:`add_handler`.

        Example::

            @connection.on("close")
            def closed(code, reason):
                print("closed", code)
        """

        def decorator(fn: SignalHandler) -> SignalHandler:
            self.add_handler(signal, fn)
            return fn

        return decorator

    # -- Open / Close ---------------------------------------------------------

    def open(self, token: str | None, path: str) -> bool:
        """Start connecting to *path* with *token*.

        Returns False without doing anything when *token* is empty or a
        connection is already open, connecting, or not yet released.
        """
        if not token:
            logger.debug("open() skipped: no token")
            return False
        if self._task is not None or self._state != ConnectionState.DISCONNECTED:
            logger.debug("open() skipped: connection is %s", self._state.value)
            return False

        self._token = token
        self._path = path
        self._close_requested = False
        url = build_endpoint_url(self._settings, path, token)

        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run(url))
        return True

    def close(self, code: int = WS_CLOSE_NORMAL, reason: str = "Client disconnect") -> None:
        """Request a graceful close.

        The client-initiated flag is set before anything else so the
        ``close`` signal that follows is never mistaken for a drop.
        """
        self._close_requested = True
        if self._task is None or self._state == ConnectionState.CLOSING:
            return

        self._set_state(ConnectionState.CLOSING)
        if self._ws is not None:
            self._fire_task(self._close_ws(self._ws, code, reason))
        else:
            # Still in the handshake
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the socket is released and ``open()`` works again."""
        pending: list[asyncio.Future[Any]] = list(self._background_tasks)
        if self._task is not None:
            pending.append(self._task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def set_token(self, token: str | None) -> None:
        """Replace the token used by the next ``open()`` from a reconnect."""
        self._token = token or None

    def forget_token(self) -> None:
        """Drop the stored token so nothing reconnects with it (logout)."""
        self._token = None

    # -- Send -----------------------------------------------------------------

    async def send(self, payload: dict[str, Any]) -> bool:
        """Encode and send one frame.  Returns False when not open."""
        ws = self._ws
        if ws is None or self._state != ConnectionState.OPEN:
            logger.debug("Send skipped: connection is %s", self._state.value)
            return False

        try:
            await ws.send(self._codec.encode(payload))
            return True
        except ConnectionClosed:
            logger.debug("Send failed: connection closed")
            return False
        except Exception as exc:
            logger.debug("Send failed: %s", exc)
            return False

    # -- Internal: connection task --------------------------------------------

    async def _connect_websocket(self, url: str) -> Any:
        return await websockets.asyncio.client.connect(
            url,
            max_size=self._settings.max_message_size,
            open_timeout=None,  # asyncio.wait_for handles timeout
        )

    async def _handshake(self, url: str) -> tuple[Any | None, int, str]:
        """Open the socket.  Returns ``(ws, code, reason)``, ws None on failure."""
        timeout = self._settings.connection_timeout
        try:
            ws = await asyncio.wait_for(self._connector(url), timeout=timeout)
            return ws, WS_CLOSE_NORMAL, ""
        except asyncio.TimeoutError:
            exc = ChannelConnectionError(f"Connection timed out after {timeout}s")
            code = WS_CLOSE_ABNORMAL
        except InvalidStatus as err:
            status = err.response.status_code
            exc = ChannelConnectionError(f"Handshake rejected with HTTP {status}")
            # Token middleware rejects the upgrade instead of closing with 4401
            code = WS_CLOSE_AUTH_FAILED if status in (401, 403) else WS_CLOSE_ABNORMAL
        except Exception as err:
            exc = ChannelConnectionError(f"Failed to connect: {err}")
            code = WS_CLOSE_ABNORMAL

        logger.warning("%s (path=%s)", exc, self._path)
        self._emit("error", exc)
        return None, code, str(exc)

    async def _run(self, url: str) -> None:
        ws: Any | None = None
        code, reason = WS_CLOSE_ABNORMAL, ""
        try:
            ws, code, reason = await self._handshake(url)
            if ws is None:
                return

            self._ws = ws
            if self._close_requested:
                # close() landed between handshake completion and resumption
                await self._close_ws(ws, WS_CLOSE_NORMAL, "Client disconnect")
                return

            self._set_state(ConnectionState.OPEN)
            logger.info("Channel open (path=%s)", self._path)
            self._emit("open")

            async for raw in ws:
                self._emit("message", raw)
        except ConnectionClosed:
            pass
        except asyncio.CancelledError:
            code, reason = WS_CLOSE_NORMAL, "Client disconnect"
            if ws is not None:
                self._fire_task(self._close_ws(ws, code, reason))
            raise
        except Exception as exc:
            logger.warning("Receive loop error: %s", exc)
            self._emit("error", exc)
        finally:
            if ws is not None:
                code = getattr(ws, "close_code", None) or code
                reason = getattr(ws, "close_reason", None) or reason
            self._ws = None
            self._task = None
            self._set_state(ConnectionState.DISCONNECTED)
            logger.debug(
                "Channel closed: code=%d reason=%s by_client=%s",
                code,
                reason,
                self._close_requested,
            )
            self._emit("close", code, reason)

    @staticmethod
    async def _close_ws(ws: Any, code: int, reason: str) -> None:
        try:
            await ws.close(code, reason)
        except Exception as exc:
            logger.debug("Close failed: %s", exc)

    # -- State management -----------------------------------------------------

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state == self._state:
            return
        old = self._state
        self._state = new_state
        logger.debug("State: %s -> %s", old.value, new_state.value)

    def _emit(self, signal: str, *args: Any) -> None:
        """Call every handler for *signal*; a failing handler is only logged."""
        for handler in list(self._handlers[signal]):
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    self._fire_task(result)
            except Exception as exc:
                logger.error("Handler error for '%s': %s", signal, exc)
