# =============================================================================
# Reqdesk Client -- Protocol Constants
# =============================================================================
#
# Values match the marketplace backend's websocket consumers
# (/ws/notifications/ and /ws/chat/<id>/).
# =============================================================================

# -- Timing (seconds) --------------------------------------------------------

HEARTBEAT_INTERVAL = 20.0
CONNECTION_TIMEOUT = 10.0

# -- Reconnection -------------------------------------------------------------

RECONNECT_DELAY = 5.0
RECONNECT_FACTOR = 2.0
RECONNECT_MAX_DELAY = 60.0
RECONNECT_MAX_ATTEMPTS = -1  # -1 = infinite

# -- Endpoints -----------------------------------------------------------------

DEV_HOST = "127.0.0.1:8000"
WS_PATH_PREFIX = "/ws/"
NOTIFICATIONS_PATH = "notifications/"
CHAT_PATH_TEMPLATE = "chat/{conversation_id}/"
TOKEN_QUERY_PARAM = "token"

# -- Environment variables -----------------------------------------------------

ENV_MODE = "REQDESK_ENV"
ENV_HOST = "REQDESK_HOST"
ENV_DEV_HOST = "REQDESK_DEV_HOST"
ENV_HEARTBEAT_INTERVAL = "REQDESK_HEARTBEAT_INTERVAL"
ENV_RECONNECT_DELAY = "REQDESK_RECONNECT_DELAY"

# -- Messages ------------------------------------------------------------------

MAX_MESSAGE_SIZE = 1_048_576  # 1 MB
DEFAULT_NOTIFICATION_TITLE = "Notification"

# -- Frame types ---------------------------------------------------------------

FRAME_HEARTBEAT = "heartbeat"
FRAME_CONNECTION_SUCCESS = "connection_success"
FRAME_MARK_ALL_AS_READ = "MARK_ALL_AS_READ"
FRAME_ALL_READ_SUCCESS = "ALL_READ_SUCCESS"

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
WS_CLOSE_GOING_AWAY = 1001
WS_CLOSE_ABNORMAL = 1006
WS_CLOSE_POLICY_VIOLATION = 1008
WS_CLOSE_AUTH_FAILED = 4401
WS_CLOSE_AUTH_EXPIRED = 4403
