"""
session/models.py -- Domain dataclasses for the session resilience layer.

Pattern: Data class. SessionHandle mirrors a server-side session record as
the store hands it out; ResponseEnvelope is the outgoing response as the
ASGI middleware sees it before transmission.

Layer rule: no imports from api/, auth/, or client/.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from starlette.datastructures import MutableHeaders


@dataclass
class SessionHandle:
    """A server-held session identified by an opaque session_id.

    max_age_ms is the remaining lifetime and is never negative. touch()
    restarts the countdown from original_max_age_ms; the session_id is
    left as-is.
    """

    session_id: str
    original_max_age_ms: int
    expires_at: float  # epoch seconds
    user_id: int | None = None
    last_touched: float = field(default_factory=time.time)

    @property
    def max_age_ms(self) -> int:
        remaining = int((self.expires_at - time.time()) * 1000)
        return max(remaining, 0)

    @property
    def is_expired(self) -> bool:
        return self.max_age_ms == 0

    def touch(self) -> None:
        now = time.time()
        self.last_touched = now
        self.expires_at = now + self.original_max_age_ms / 1000


@dataclass
class ResponseEnvelope:
    """An HTTP response captured between the handler and the wire.

    headers wraps the raw ASGI header list, so mutations made through it
    land in the message that is eventually sent.
    """

    status_code: int
    headers: MutableHeaders
    body: bytes = b""

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")
