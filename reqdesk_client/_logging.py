# =============================================================================
# Reqdesk Client -- Logging
# =============================================================================
#
# Single package logger.  Applications configure handlers; the library only
# attaches a NullHandler so nothing is printed unless asked for.
# =============================================================================

import logging

logger = logging.getLogger("reqdesk_client")
logger.addHandler(logging.NullHandler())
