# =============================================================================
# Reqdesk Client -- Error Types
# =============================================================================


class ReqdeskError(Exception):
    """Base exception for all reqdesk client errors."""


class ChannelConnectionError(ReqdeskError):
    """Handshake failed, timed out, or the server refused the socket."""


class ChannelProtocolError(ReqdeskError):
    """Inbound frame could not be decoded or lacks required fields."""


class ChannelConfigError(ReqdeskError):
    """Invalid settings or environment values."""
