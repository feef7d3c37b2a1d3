"""Tests for settings and endpoint construction."""

import pytest

from reqdesk_client.config import (
    ChannelSettings,
    build_endpoint_url,
    chat_path,
    notifications_path,
)
from reqdesk_client.errors import ChannelConfigError
from reqdesk_client.types import DeploymentMode, ReconnectMode


class TestEndpointUrl:
    def test_development_notifications(self):
        url = build_endpoint_url(ChannelSettings(), notifications_path(), "abc")
        assert url == "ws://127.0.0.1:8000/ws/notifications/?token=abc"

    def test_production_chat(self):
        settings = ChannelSettings(
            mode=DeploymentMode.PRODUCTION, production_host="desk.example.com"
        )
        url = build_endpoint_url(settings, chat_path(17), "jwt.part.sig")
        assert url == "wss://desk.example.com/ws/chat/17/?token=jwt.part.sig"

    def test_token_is_quoted(self):
        url = build_endpoint_url(ChannelSettings(), notifications_path(), "a b&c")
        assert url.endswith("?token=a%20b%26c")

    def test_chat_path_rejects_empty_id(self):
        with pytest.raises(ChannelConfigError):
            chat_path("  ")


class TestSettings:
    def test_defaults(self):
        s = ChannelSettings()
        assert s.mode == DeploymentMode.DEVELOPMENT
        assert s.heartbeat_interval == 20.0
        assert s.reconnect.delay == 5.0
        assert s.reconnect.mode == ReconnectMode.CONSTANT
        assert s.reconnect.max_attempts == -1

    def test_production_requires_host(self):
        with pytest.raises(ChannelConfigError):
            ChannelSettings(mode=DeploymentMode.PRODUCTION)

    def test_host_checked_after_mode_change(self):
        s = ChannelSettings()
        s.mode = DeploymentMode.PRODUCTION
        with pytest.raises(ChannelConfigError):
            s.host

    def test_heartbeat_must_be_positive(self):
        with pytest.raises(ChannelConfigError):
            ChannelSettings(heartbeat_interval=0)


class TestFromEnv:
    def test_empty_env_is_development(self):
        s = ChannelSettings.from_env({})
        assert s.mode == DeploymentMode.DEVELOPMENT
        assert s.host == "127.0.0.1:8000"

    def test_production(self):
        s = ChannelSettings.from_env(
            {"REQDESK_ENV": "Production", "REQDESK_HOST": "desk.example.com"}
        )
        assert s.scheme == "wss"
        assert s.host == "desk.example.com"

    def test_timings(self):
        s = ChannelSettings.from_env(
            {
                "REQDESK_DEV_HOST": "localhost:9000",
                "REQDESK_HEARTBEAT_INTERVAL": "30",
                "REQDESK_RECONNECT_DELAY": "2.5",
            }
        )
        assert s.host == "localhost:9000"
        assert s.heartbeat_interval == 30.0
        assert s.reconnect.delay == 2.5

    def test_unknown_mode(self):
        with pytest.raises(ChannelConfigError):
            ChannelSettings.from_env({"REQDESK_ENV": "staging"})

    def test_non_numeric_interval(self):
        with pytest.raises(ChannelConfigError):
            ChannelSettings.from_env({"REQDESK_HEARTBEAT_INTERVAL": "soon"})

    def test_production_without_host(self):
        with pytest.raises(ChannelConfigError):
            ChannelSettings.from_env({"REQDESK_ENV": "production"})
