"""
api/routes/v1/auth.py -- Login, logout, registration and current-user endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account (201); opens no session
  POST /api/v1/auth/login      -- password login; opens a server session,
                                  sets the session cookie, returns a bearer token
  POST /api/v1/auth/logout     -- destroys the server session, clears the cookie
  GET  /api/v1/auth/me         -- current user (session or bearer), else 401

The 401/403 responses from these routes are what client.interceptor
classifies as authentication failures.

Security:
  POST /login and /register are rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses.
  Login replaces any session the request already carried (fixation guard).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MessageResponse, RegisterRequest, UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password, set_session_cookie
from core.config import get_settings
from session.store import SessionStore

logger = logging.getLogger("sessionguard.api")

_settings = get_settings()

router = APIRouter()


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/register", status_code=201, response_model=UserResponse)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a user account with the default "user" role."""
    if not _settings.self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    user_store: UserStore = request.app.state.user_store
    user = User(username=body.username, email=body.email, hashed_password=hash_password(body.password))
    try:
        user.id = user_store.create_user(user)
    except IntegrityError:
        raise HTTPException(
            status_code=400,
            detail={"code": "username_taken", "message": "Username already in use."},
        )
    logger.info("Registered user %r", user.username)
    return UserResponse.from_user(user)


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password.

    Wrong username and wrong password share one generic 401 so the response
    does not reveal which accounts exist. A disabled account gets 403.
    """
    user_store: UserStore = request.app.state.user_store
    session_store: SessionStore = request.app.state.session_store

    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        return _error(401, "bad_credentials", "Invalid username or password.")
    if not user.is_active:
        return _error(403, "account_disabled", "Your account has been disabled.")

    previous = getattr(request.state, "session", None)
    if previous is not None:
        session_store.destroy(previous.session_id)
    handle = session_store.create(user_id=user.id)
    user_store.update_last_login(user.id)

    token = create_access_token(user.id, user.username, user.role)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user=UserResponse.from_user(user),
            access_token=token,
            expires_in=_settings.token_expire_seconds,
        ).model_dump(),
    )
    set_session_cookie(resp, handle.session_id, handle.original_max_age_ms // 1000)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("User %r logged in", user.username)
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the current server session (if any) and clear its cookie."""
    session = getattr(request.state, "session", None)
    if session is not None:
        request.app.state.session_store.destroy(session.session_id)
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    resp.delete_cookie(_settings.session_cookie_name, path="/")
    return resp


@router.get("/auth/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user."""
    return UserResponse.from_user(user)
