"""
session/middleware.py -- ASGI middleware that hosts the keeper and responder.

Both classes are raw ASGI middleware rather than @app.middleware("http")
functions: the keeper needs to put the session handle on request.state
before routing, and the responder needs the final response body, which
BaseHTTPMiddleware only exposes as a stream.

Registration (api/main.py) puts ResilienceResponderMiddleware outside
SessionKeeperMiddleware, so the responder sees a response that already
carries the keep-alive headers. The two touch disjoint header names.

Layer rule: no imports from api/, auth/, or client/.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from session import keeper, responder
from session.models import ResponseEnvelope, SessionHandle
from session.store import SessionStore

logger = logging.getLogger("sessionguard.session")


def _message_headers(message: Message) -> MutableHeaders:
    # MutableHeaders writes through to the list it wraps, so normalise first.
    message["headers"] = list(message.get("headers", []))
    return MutableHeaders(scope=message)


class SessionKeeperMiddleware:
    """Resolve the session cookie, refresh near-expiry sessions, add keep-alive headers.

    The handle (or None) is exposed to route handlers as request.state.session.
    A store failure is logged and treated as "no session" -- the keeper never
    turns a request into an error.
    """

    def __init__(
        self,
        app: ASGIApp,
        cookie_name: str = "sid",
        threshold_ms: int = keeper.REFRESH_THRESHOLD_MS,
        keep_alive_timeout: int = keeper.KEEP_ALIVE_TIMEOUT,
        keep_alive_max: int = keeper.KEEP_ALIVE_MAX,
    ) -> None:
        self.app = app
        self.cookie_name = cookie_name
        self.threshold_ms = threshold_ms
        self.keep_alive_timeout = keep_alive_timeout
        self.keep_alive_max = keep_alive_max

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        store: Optional[SessionStore] = _session_store(scope)
        handle = await self._load(store, scope)
        if store is not None and keeper.on_request(handle, self.threshold_ms):
            await self._persist(store, handle)
        scope.setdefault("state", {})["session"] = handle

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                envelope = ResponseEnvelope(status_code=message["status"], headers=_message_headers(message))
                keeper.on_response(envelope, self.keep_alive_timeout, self.keep_alive_max)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _load(self, store: Optional[SessionStore], scope: Scope) -> Optional[SessionHandle]:
        if store is None:
            return None
        session_id = HTTPConnection(scope).cookies.get(self.cookie_name)
        if not session_id:
            return None
        try:
            return await run_in_threadpool(store.get, session_id)
        except SQLAlchemyError:
            logger.warning("Session lookup failed; continuing without a session", exc_info=True)
            return None

    async def _persist(self, store: SessionStore, handle: SessionHandle) -> None:
        try:
            await run_in_threadpool(store.save, handle)
        except SQLAlchemyError:
            logger.warning("Could not persist refresh of session %s", handle.session_id, exc_info=True)


def _session_store(scope: Scope) -> Optional[SessionStore]:
    app = scope.get("app")
    state = getattr(app, "state", None)
    return getattr(state, "session_store", None)


class ResilienceResponderMiddleware:
    """Run responder.before_send on every server-error response.

    Responses below 500 stream straight through. A 5xx response is held back
    until its body is complete, classified, then sent in one piece with the
    original status and body.
    """

    def __init__(
        self,
        app: ASGIApp,
        retry_after: int = responder.RETRY_AFTER_SECONDS,
        marker: str = responder.STORAGE_FAILURE_MARKER,
    ) -> None:
        self.app = app
        self.retry_after = retry_after
        self.marker = marker

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start: Optional[Message] = None
        chunks: list[bytes] = []

        async def send_wrapper(message: Message) -> None:
            nonlocal start
            if message["type"] == "http.response.start":
                if message["status"] < 500:
                    await send(message)
                else:
                    start = message
                return
            if message["type"] != "http.response.body" or start is None:
                await send(message)
                return

            chunks.append(message.get("body", b""))
            if message.get("more_body", False):
                return
            body = b"".join(chunks)
            self._annotate(start, body)
            await send(start)
            await send({"type": "http.response.body", "body": body, "more_body": False})
            start = None

        await self.app(scope, receive, send_wrapper)

    def _annotate(self, start: Message, body: bytes) -> None:
        try:
            envelope = ResponseEnvelope(status_code=start["status"], headers=_message_headers(start), body=body)
        except Exception:
            logger.warning("Could not wrap response for retry classification", exc_info=True)
            return
        responder.before_send(envelope, self.retry_after, self.marker)
