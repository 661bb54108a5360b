"""
tests/conftest.py -- Shared test fixtures for SessionGuard.

This module provides:
  - _make_test_stores(): isolated in-memory DBs for users + sessions
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient with a seeded user and a bearer token
  - RecordingNavigator / navigator / credentials / interceptor: client-side
    collaborators that record instead of touching a browser or the disk

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker.

Environment must be set before any api/auth import: DEBUG lets get_settings()
generate a SECRET_KEY, ALLOWED_HOSTS admits TestClient's "testserver" host,
and LOGIN_RATE_LIMIT is raised so login-heavy tests are not throttled.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from client.interceptor import AuthInterceptor
from client.storage import CredentialStore, LocalStorage
from session.store import SessionStore

TEST_USERNAME = "testuser"
TEST_PASSWORD = "testpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, SessionStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    session_url = f"sqlite:///file:test_sessions_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), SessionStore(db_url=session_url)


def _patch_lifespan(user_store: UserStore, session_store: SessionStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.session_store = session_store
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Server fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_stores(request) -> Generator[tuple[UserStore, SessionStore, int], None, None]:
    """Yield (user_store, session_store, user_id) with one active user seeded."""
    user_store, session_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    uid = user_store.create_user(
        User(username=TEST_USERNAME, hashed_password=hash_password(TEST_PASSWORD), role="admin")
    )
    yield user_store, session_store, uid
    user_store.close()
    session_store.close()


@pytest.fixture(scope="module")
def api_client(api_stores) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    requests pass through the real middleware stack and route handlers.
    """
    user_store, session_store, uid = api_stores
    token = create_access_token(user_id=uid, username=TEST_USERNAME, role="admin", expire_seconds=3600)
    app.router.lifespan_context = _patch_lifespan(user_store, session_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid


# ---------------------------------------------------------------------------
# Client-side fixtures
# ---------------------------------------------------------------------------


class RecordingNavigator:
    """Navigator stub: remembers every assign() instead of opening a browser."""

    def __init__(self, pathname: str = "/") -> None:
        self.pathname = pathname
        self.visits: list[str] = []

    def assign(self, path: str) -> None:
        self.visits.append(path)
        self.pathname = path

    def replace(self, path: str) -> None:
        self.pathname = path


@pytest.fixture
def local_storage() -> Generator[LocalStorage, None, None]:
    storage = LocalStorage(":memory:")
    yield storage
    storage.close()


@pytest.fixture
def credentials(local_storage: LocalStorage) -> CredentialStore:
    return CredentialStore(local_storage)


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator(pathname="/dashboard")


@pytest.fixture
def interceptor(credentials: CredentialStore, navigator: RecordingNavigator) -> AuthInterceptor:
    return AuthInterceptor(credentials, navigator)
