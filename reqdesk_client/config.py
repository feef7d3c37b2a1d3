# =============================================================================
# Reqdesk Client -- Settings and Endpoint Addresses
# =============================================================================

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import quote

from .constants import (
    CHAT_PATH_TEMPLATE,
    CONNECTION_TIMEOUT,
    DEV_HOST,
    ENV_DEV_HOST,
    ENV_HEARTBEAT_INTERVAL,
    ENV_HOST,
    ENV_MODE,
    ENV_RECONNECT_DELAY,
    HEARTBEAT_INTERVAL,
    MAX_MESSAGE_SIZE,
    NOTIFICATIONS_PATH,
    TOKEN_QUERY_PARAM,
    WS_PATH_PREFIX,
)
from .errors import ChannelConfigError
from .types import DeploymentMode, ReconnectConfig


@dataclass
class ChannelSettings:
    """Connection settings shared by notification and chat channels.

    Attributes:
        mode: ``development`` talks to *dev_host* over ``ws://``,
            ``production`` to *production_host* over ``wss://``.
        production_host: Host (and optional port) serving the app in
            production, e.g. ``"desk.example.com"``.
        dev_host: Local backend address.
        heartbeat_interval: Seconds between heartbeat frames.
        reconnect: Reconnection policy configuration.
        connection_timeout: Seconds allowed for the websocket handshake.
        max_message_size: Largest inbound frame accepted, in bytes.
    """

    mode: DeploymentMode = DeploymentMode.DEVELOPMENT
    production_host: str | None = None
    dev_host: str = DEV_HOST
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    connection_timeout: float = CONNECTION_TIMEOUT
    max_message_size: int = MAX_MESSAGE_SIZE

    def __post_init__(self) -> None:
        if self.mode == DeploymentMode.PRODUCTION and not self.production_host:
            raise ChannelConfigError("production mode requires production_host")
        if self.heartbeat_interval <= 0:
            raise ChannelConfigError(
                f"heartbeat_interval must be positive, got {self.heartbeat_interval}"
            )
        if self.reconnect.delay < 0:
            raise ChannelConfigError(
                f"reconnect delay must not be negative, got {self.reconnect.delay}"
            )

    @property
    def scheme(self) -> str:
        return "wss" if self.mode == DeploymentMode.PRODUCTION else "ws"

    @property
    def host(self) -> str:
        if self.mode == DeploymentMode.PRODUCTION:
            if not self.production_host:
                raise ChannelConfigError("production mode requires production_host")
            return self.production_host
        return self.dev_host

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ChannelSettings:
        """Build settings from ``REQDESK_*`` environment variables.

        Recognised: ``REQDESK_ENV`` (``development`` / ``production``),
        ``REQDESK_HOST``, ``REQDESK_DEV_HOST``,
        ``REQDESK_HEARTBEAT_INTERVAL`` and ``REQDESK_RECONNECT_DELAY``.
        Unset variables keep their defaults.

        Raises:
            ChannelConfigError: On unknown modes or non-numeric timings.
        """
        env = os.environ if environ is None else environ

        raw_mode = env.get(ENV_MODE, DeploymentMode.DEVELOPMENT.value).strip().lower()
        try:
            mode = DeploymentMode(raw_mode)
        except ValueError:
            raise ChannelConfigError(
                f"{ENV_MODE} must be 'development' or 'production', got {raw_mode!r}"
            ) from None

        reconnect = ReconnectConfig()
        if ENV_RECONNECT_DELAY in env:
            reconnect.delay = _env_float(env, ENV_RECONNECT_DELAY)

        kwargs: dict = {
            "mode": mode,
            "production_host": env.get(ENV_HOST) or None,
            "reconnect": reconnect,
        }
        if env.get(ENV_DEV_HOST):
            kwargs["dev_host"] = env[ENV_DEV_HOST]
        if ENV_HEARTBEAT_INTERVAL in env:
            kwargs["heartbeat_interval"] = _env_float(env, ENV_HEARTBEAT_INTERVAL)

        return cls(**kwargs)


def _env_float(env: Mapping[str, str], name: str) -> float:
    try:
        return float(env[name])
    except ValueError:
        raise ChannelConfigError(f"{name} must be a number, got {env[name]!r}") from None


# -- Endpoint paths -----------------------------------------------------------


def notifications_path() -> str:
    return NOTIFICATIONS_PATH


def chat_path(conversation_id: str | int) -> str:
    conversation = str(conversation_id).strip()
    if not conversation:
        raise ChannelConfigError("conversation id must not be empty")
    return CHAT_PATH_TEMPLATE.format(conversation_id=quote(conversation, safe=""))


def build_endpoint_url(settings: ChannelSettings, path: str, token: str) -> str:
    """Return the websocket address for *path* authenticated by *token*.

    Example::

        >>> build_endpoint_url(ChannelSettings(), "notifications/", "abc")
        'ws://127.0.0.1:8000/ws/notifications/?token=abc'
    """
    return (
        f"{settings.scheme}://{settings.host}{WS_PATH_PREFIX}{path}"
        f"?{TOKEN_QUERY_PARAM}={quote(token, safe='')}"
    )
