"""Realtime notification and chat client for the service-request desk.

Notifications::

    from reqdesk_client import ChannelSettings, NotificationChannel

    channel = NotificationChannel(ChannelSettings.from_env())
    channel.connect(token)
    ...
    print(channel.unread_count, [n.title for n in channel.notifications])
    channel.mark_as_read(42)
    await channel.mark_all_as_read()
    await channel.disconnect()

Chat::

    from reqdesk_client import ChatChannel

    async with ChatChannel(request_id) as chat:
        chat.connect(token)
        await chat.send_message("On my way")

Optional extras::

    pip install reqdesk-client[fast]   # orjson frame codec
"""

from ._version import __version__
from .channel import NotificationChannel, RealtimeChannel
from .chat import ChatChannel
from .config import ChannelSettings, build_endpoint_url, chat_path, notifications_path
from .connection import ChannelConnection
from .dispatcher import ChatDispatcher, EventDispatcher, NotificationDispatcher
from .errors import (
    ChannelConfigError,
    ChannelConnectionError,
    ChannelProtocolError,
    ReqdeskError,
)
from .heartbeat import HeartbeatMonitor
from .reconnect import ReconnectionPolicy
from .store import MessageLog, NotificationStore
from .types import (
    ChannelStats,
    ChatMessageRecord,
    ConnectionState,
    DeploymentMode,
    MarkAllReadStrategy,
    NotificationCategory,
    NotificationRecord,
    ReconnectConfig,
    ReconnectMode,
    ReconnectState,
)

__all__ = [
    "__version__",
    "NotificationChannel",
    "ChatChannel",
    "RealtimeChannel",
    "ChannelSettings",
    "ChannelConnection",
    "HeartbeatMonitor",
    "ReconnectionPolicy",
    "EventDispatcher",
    "NotificationDispatcher",
    "ChatDispatcher",
    "NotificationStore",
    "MessageLog",
    "build_endpoint_url",
    "notifications_path",
    "chat_path",
    "ChannelStats",
    "ChatMessageRecord",
    "ConnectionState",
    "DeploymentMode",
    "MarkAllReadStrategy",
    "NotificationCategory",
    "NotificationRecord",
    "ReconnectConfig",
    "ReconnectMode",
    "ReconnectState",
    "ReqdeskError",
    "ChannelConnectionError",
    "ChannelProtocolError",
    "ChannelConfigError",
]
