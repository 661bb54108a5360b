"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two auth methods are checked in priority order:
  1. Server session -- request.state.session, resolved from the session
     cookie by session.middleware.SessionKeeperMiddleware.
  2. Authorization: Bearer <token> header -- clients that cached a token at
     login (client.interceptor.AuthInterceptor.add_auth_headers).

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/ or client/. Reading request.state.session
is the only coupling to session/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.tokens import decode_access_token


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:] or None
    return None


def try_get_current_user(request: Request) -> User | None:
    """Attempt to authenticate the request via session or bearer token.

    Returns the active User on success, None on any failure. Never raises.
    """
    user_store = request.app.state.user_store

    session = getattr(request.state, "session", None)
    if session is not None and session.user_id is not None:
        user = user_store.get_by_id(session.user_id)
        if user and user.is_active:
            return user

    token = _bearer_token(request)
    if token:
        payload = decode_access_token(token)
        if payload:
            user = user_store.get_by_id(payload["user_id"])
            if user and user.is_active:
                return user

    return None


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Unauthorized: authentication required."},
        )
    return user
