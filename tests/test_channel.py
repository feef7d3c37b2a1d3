"""Tests for the NotificationChannel facade."""

import asyncio

import pytest

from reqdesk_client.channel import NotificationChannel
from reqdesk_client.types import ConnectionState, MarkAllReadStrategy


def _control_free(ws) -> list[dict]:
    return [f for f in ws.sent_frames if f.get("type") != "heartbeat"]


@pytest.fixture
def make_channel(settings, connector):
    channels = []

    def factory(**kwargs):
        ch = NotificationChannel(settings, connector=connector, **kwargs)
        channels.append(ch)
        return ch

    return factory


class TestScenario:
    @pytest.mark.asyncio
    async def test_notification_flow(self, make_channel, connector, eventually):
        channel = make_channel(strategy=MarkAllReadStrategy.LOCAL)
        assert channel.connect("abc") is True
        await eventually(lambda: channel.is_connected)
        assert connector.urls == ["ws://127.0.0.1:8000/ws/notifications/?token=abc"]

        ws = connector.last
        ws.feed({"type": "heartbeat"})
        ws.feed({"id": 1, "title": "Hi", "message": "Hello", "type": "info"})
        await eventually(lambda: channel.total_count == 1)

        [record] = channel.notifications
        assert record.id == 1
        assert record.title == "Hi"
        assert record.is_unread is True
        assert channel.unread_count == 1

        assert await channel.mark_all_as_read() is True
        assert channel.unread_count == 0
        assert all(not r.is_unread for r in channel.notifications)
        assert channel.total_count == 1

        await channel.disconnect()


class TestConnect:
    @pytest.mark.asyncio
    async def test_empty_token(self, make_channel, connector):
        channel = make_channel()
        assert channel.connect("") is False
        assert channel.connect(None) is False
        await asyncio.sleep(0.01)
        assert connector.calls == 0
        assert channel.is_connected is False

    @pytest.mark.asyncio
    async def test_heartbeat_runs(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(
            lambda: {"type": "heartbeat"} in (connector.last.sent_frames if connector.sockets else [])
        )
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_context_manager_disconnects(self, make_channel, eventually):
        channel = make_channel()
        async with channel:
            channel.connect("abc")
            await eventually(lambda: channel.is_connected)
        assert channel.state == ConnectionState.DISCONNECTED


class TestOrdering:
    @pytest.mark.asyncio
    async def test_newest_first_at_every_step(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        for i in range(6):
            connector.last.feed({"id": i, "message": f"m{i}"})
            await eventually(lambda: channel.total_count == i + 1)
            assert [r.id for r in channel.notifications] == list(range(i, -1, -1))
        await channel.disconnect()


class TestReadState:
    @pytest.mark.asyncio
    async def test_mark_as_read(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        connector.last.feed({"id": "a", "message": "one"})
        connector.last.feed({"id": "b", "message": "two"})
        await eventually(lambda: channel.total_count == 2)

        channel.mark_as_read("a")
        channel.mark_as_read("a")
        assert channel.unread_count == 1
        assert [r.id for r in channel.unread()] == ["b"]

        assert channel.mark_as_read("nonexistent") is False
        assert channel.total_count == 2
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_server_strategy_waits_for_ack(self, make_channel, connector, eventually):
        channel = make_channel(strategy=MarkAllReadStrategy.SERVER)
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        ws = connector.last
        ws.feed({"id": 1, "message": "one"})
        await eventually(lambda: channel.total_count == 1)

        assert await channel.mark_all_as_read() is True
        assert _control_free(ws) == [{"type": "MARK_ALL_AS_READ"}]
        assert channel.unread_count == 1  # unchanged until confirmed

        ws.feed({"type": "ALL_READ_SUCCESS"})
        await eventually(lambda: channel.unread_count == 0)
        assert channel.total_count == 1
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_server_strategy_offline(self, make_channel):
        channel = make_channel(strategy="server")
        assert await channel.mark_all_as_read() is False

    @pytest.mark.asyncio
    async def test_local_strategy_sends_nothing(self, make_channel, connector, eventually):
        channel = make_channel(strategy=MarkAllReadStrategy.LOCAL)
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        connector.last.feed({"id": 1, "message": "one"})
        await eventually(lambda: channel.total_count == 1)
        await channel.mark_all_as_read()
        assert _control_free(connector.last) == []
        await channel.disconnect()


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_notifications(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        for i in range(5):
            connector.last.feed({"id": i, "message": "m"})
        await eventually(lambda: channel.total_count == 5)

        channel.clear_notifications()
        assert channel.notifications == []
        assert channel.total_count == 0
        assert channel.unread_count == 0
        await channel.disconnect()


class TestListeners:
    @pytest.mark.asyncio
    async def test_on_notification(self, make_channel, connector, eventually):
        channel = make_channel()
        seen = []

        @channel.on_notification
        def show(record):
            seen.append(record.title)

        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        connector.last.feed({"message": "m", "title": "Request accepted"})
        connector.last.feed({"type": "heartbeat"})
        await eventually(lambda: seen == ["Request accepted"])
        await channel.disconnect()


class TestTeardown:
    @pytest.mark.asyncio
    async def test_disconnect_releases_everything(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.heartbeat.running)

        await channel.disconnect()
        assert channel.state == ConnectionState.DISCONNECTED
        assert channel.heartbeat.running is False
        assert channel.reconnect_policy.pending is False

        await asyncio.sleep(0.1)
        assert connector.calls == 1

        # Reference released, so connecting again works
        assert channel.connect("abc") is True
        await eventually(lambda: channel.is_connected)
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_retry(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        connector.last.drop()
        await eventually(lambda: channel.reconnect_policy.pending)

        await channel.disconnect()
        await asyncio.sleep(0.1)
        assert connector.calls == 1

    @pytest.mark.asyncio
    async def test_logout_stops_reconnect(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        connector.last.drop()
        await eventually(lambda: channel.reconnect_policy.pending)

        channel.update_token(None)
        await asyncio.sleep(0.1)
        assert connector.calls == 1
        assert channel.connection.token is None

    @pytest.mark.asyncio
    async def test_new_token_used_on_reconnect(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        channel.update_token("refreshed")
        connector.last.drop()
        await eventually(lambda: connector.calls == 2)
        assert connector.urls[1].endswith("?token=refreshed")
        await eventually(lambda: channel.is_connected)
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_stats(self, make_channel, connector, eventually):
        channel = make_channel()
        channel.connect("abc")
        await eventually(lambda: channel.is_connected)
        connector.last.feed("garbage")
        connector.last.feed({"message": "ok"})
        await eventually(lambda: channel.stats.frames_received == 2)
        assert channel.stats.frames_dropped == 1
        assert channel.stats.opens == 1
        await channel.disconnect()
