"""
session/store.py -- SQLAlchemy Core adapter for server-side session handles.

Pattern: Repository + Data Mapper (same as auth/store.py).
SessionStore hands out SessionHandle objects and persists their expiry; the
keeper and the routes never touch SQL directly.

The store holds no session payload beyond the owning user id. Its job is to
answer "which session is this cookie, and how long does it have left?" and
to record touches. Concurrent touches of one session are single-row UPDATEs,
so the database serialises them.

DB path: session/sessionguard_sessions.db

Layer rule: no imports from api/, auth/, or client/.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine

from session.models import SessionHandle

logger = logging.getLogger("sessionguard.session")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'sessionguard_sessions.db'}"
_DEFAULT_MAX_AGE_MS = 30 * 24 * 60 * 60 * 1000  # 30 days

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("sid", String(64), primary_key=True),
    Column("user_id", Integer),
    Column("original_max_age_ms", Integer, nullable=False),
    Column("expires_at", Float, nullable=False),
    Column("last_touched", Float, nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode on every new SQLite connection."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for SessionHandle records.

    Usage:
        store = SessionStore()
        handle = store.create(user_id=1)
        handle = store.get(handle.session_id)   # None once expired
        handle.touch(); store.save(handle)
        store.destroy(handle.session_id)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, max_age_ms: int = _DEFAULT_MAX_AGE_MS) -> None:
        self.max_age_ms = max_age_ms
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create(self, user_id: int | None = None) -> SessionHandle:
        """Open a new session with a fresh random id and the full lifetime."""
        now = time.time()
        handle = SessionHandle(
            session_id=secrets.token_urlsafe(32),
            original_max_age_ms=self.max_age_ms,
            expires_at=now + self.max_age_ms / 1000,
            user_id=user_id,
            last_touched=now,
        )
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    sid=handle.session_id,
                    user_id=handle.user_id,
                    original_max_age_ms=handle.original_max_age_ms,
                    expires_at=handle.expires_at,
                    last_touched=handle.last_touched,
                )
            )
            conn.commit()
        return handle

    def get(self, session_id: str) -> SessionHandle | None:
        """Return the live handle for session_id, or None if unknown or expired.

        Expired rows are deleted on sight so a stale cookie cannot revive them.
        """
        if not session_id:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.sid == session_id)).fetchone()
        if row is None:
            return None
        handle = _row_to_handle(row)
        if handle.is_expired:
            self.destroy(session_id)
            return None
        return handle

    def save(self, handle: SessionHandle) -> bool:
        """Persist the handle's expiry and last-touched time.

        Returns False if the session no longer exists (destroyed concurrently).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where(_sessions.c.sid == handle.session_id)
                .values(expires_at=handle.expires_at, last_touched=handle.last_touched)
            )
            conn.commit()
        return result.rowcount > 0

    def destroy(self, session_id: str) -> None:
        """Delete a session. Deleting an unknown id is not an error."""
        with self.engine.connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.sid == session_id))
            conn.commit()

    def purge_expired(self) -> int:
        """Delete every expired session. Returns the number of rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= time.time()))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_handle(row) -> SessionHandle:
    return SessionHandle(
        session_id=row.sid,
        original_max_age_ms=row.original_max_age_ms,
        expires_at=row.expires_at,
        user_id=row.user_id,
        last_touched=row.last_touched,
    )
