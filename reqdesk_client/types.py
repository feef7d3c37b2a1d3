# =============================================================================
# Reqdesk Client -- Type Definitions
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .constants import (
    RECONNECT_DELAY,
    RECONNECT_FACTOR,
    RECONNECT_MAX_ATTEMPTS,
    RECONNECT_MAX_DELAY,
)


class ConnectionState(str, Enum):
    """Lifecycle state of one physical websocket.

    Flow: DISCONNECTED -> CONNECTING -> OPEN -> CLOSING -> DISCONNECTED.
    A failed handshake goes CONNECTING -> DISCONNECTED directly.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


class ReconnectState(str, Enum):
    """Reconnection policy state.

    IDLE -- nothing scheduled.
    PENDING -- a retry timer is running.
    CONNECTING -- the timer fired and ``open()`` was invoked.
    """

    IDLE = "idle"
    PENDING = "pending"
    CONNECTING = "connecting"


class ReconnectMode(str, Enum):
    """Delay strategy between reconnect attempts."""

    CONSTANT = "constant"
    EXPONENTIAL = "exponential"


class DeploymentMode(str, Enum):
    """Selects scheme and host for endpoint addresses."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class NotificationCategory(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class MarkAllReadStrategy(str, Enum):
    """How ``mark_all_as_read`` reaches a consistent state.

    LOCAL -- flip every record immediately, no server involvement.
    SERVER -- ask the server and flip only on its ``ALL_READ_SUCCESS``.
    """

    LOCAL = "local"
    SERVER = "server"


@dataclass
class NotificationRecord:
    """A notification as displayed by the drawer.

    Attributes:
        id: Server id, or a synthesized ``"<epoch-ms>-<hex>"`` string.
        message: Body text.
        title: Heading, ``"Notification"`` when the server sends none.
        category: Display category derived from the frame ``type``.
        event_type: Raw ``type`` of the frame, e.g. ``"request_assigned"``.
        is_unread: ``True`` until marked read locally or by the server.
        created_at: Server timestamp, or local receipt time.
    """

    id: str | int
    message: str
    title: str
    category: NotificationCategory
    created_at: datetime
    event_type: str | None = None
    is_unread: bool = True


@dataclass
class ChatMessageRecord:
    """One line of a service-request conversation."""

    conversation_id: str
    message: str
    created_at: datetime
    sender: str | None = None
    is_provider: bool = False


@dataclass
class ReconnectConfig:
    """Configuration for automatic reconnection.

    The defaults retry forever every 5 seconds.  Exponential mode multiplies
    the delay by *factor* per consecutive failure, capped at *max_delay*.

    Attributes:
        mode: Delay strategy (default: constant).
        delay: Base delay in seconds.
        factor: Multiplier per attempt in exponential mode.
        max_delay: Upper bound for exponential delays.
        max_attempts: Retries before giving up, ``-1`` for infinite.
    """

    mode: ReconnectMode = ReconnectMode.CONSTANT
    delay: float = RECONNECT_DELAY
    factor: float = RECONNECT_FACTOR
    max_delay: float = RECONNECT_MAX_DELAY
    max_attempts: int = RECONNECT_MAX_ATTEMPTS


@dataclass
class ChannelStats:
    """Counters for a single channel facade."""

    frames_received: int = 0
    frames_dropped: int = 0
    frames_sent: int = 0
    opens: int = 0
