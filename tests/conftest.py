"""Shared fixtures: an in-memory websocket and connector."""

import asyncio
import json
import time

import pytest

from reqdesk_client.config import ChannelSettings
from reqdesk_client.types import ReconnectConfig

_CLOSED = object()


class FakeSocket:
    """Stand-in for ``websockets.asyncio.client.ClientConnection``."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    # Server side helpers

    def feed(self, frame) -> None:
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self._inbox.put_nowait(frame)

    def drop(self, code: int = 1006, reason: str = "abnormal closure") -> None:
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
            self._inbox.put_nowait(_CLOSED)

    @property
    def sent_frames(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]

    # Client side API

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.drop(code, reason)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Records every URL and hands out :class:`FakeSocket` instances."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []
        self.failures = 0
        self.error: Exception | None = None
        self.delay = 0.0

    @property
    def calls(self) -> int:
        return len(self.urls)

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.failures:
            self.failures -= 1
            raise OSError("Connection refused")
        ws = FakeSocket(url)
        self.sockets.append(ws)
        return ws


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def settings():
    """Development settings with short timings."""
    return ChannelSettings(
        heartbeat_interval=0.02,
        reconnect=ReconnectConfig(delay=0.05),
        connection_timeout=0.5,
    )


async def _eventually(predicate, timeout: float = 1.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met within %.1fs" % timeout)
        await asyncio.sleep(0.001)


@pytest.fixture
def eventually():
    """``await eventually(lambda: ...)`` polls until the predicate holds."""
    return _eventually
