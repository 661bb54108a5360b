"""
session/keeper.py -- Keeps active sessions from expiring mid-use.

Two hooks, one on each side of the route handler:

  on_request(session)   -- before the handler. A session with less than the
                           refresh threshold (one minute) left is touched so
                           its countdown restarts. No session, no-op.
  on_response(envelope) -- after the handler, before transmission. Adds the
                           connection persistence hints to every response.

Neither hook rejects, redirects, or inspects a body. Concurrent touches of
the same session are serialised by the session store, not here.

Layer rule: no imports from api/, auth/, or client/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

logger = logging.getLogger("sessionguard.session")

REFRESH_THRESHOLD_MS = 60_000
KEEP_ALIVE_TIMEOUT = 5
KEEP_ALIVE_MAX = 1000


def on_request(session: Optional[Any], threshold_ms: int = REFRESH_THRESHOLD_MS) -> bool:
    """Touch the session when 0 < remaining lifetime < threshold_ms.

    Returns True when the session was touched so the caller can persist the
    new expiry. An expired session (remaining lifetime 0) is left alone.
    """
    if session is None:
        return False
    remaining = session.max_age_ms or 0
    if 0 < remaining < threshold_ms:
        session.touch()
        logger.debug("Session %s refreshed (%d ms left)", session.session_id, remaining)
        return True
    return False


def keep_alive_value(timeout: int = KEEP_ALIVE_TIMEOUT, max_requests: int = KEEP_ALIVE_MAX) -> str:
    return f"timeout={timeout}, max={max_requests}"


def on_response(envelope: Any, timeout: int = KEEP_ALIVE_TIMEOUT, max_requests: int = KEEP_ALIVE_MAX) -> None:
    """Set Connection and Keep-Alive on the envelope, whatever its status or body."""
    envelope.headers["Connection"] = "keep-alive"
    envelope.headers["Keep-Alive"] = keep_alive_value(timeout, max_requests)
