"""
client/storage.py -- Persistent local key-value storage for the client.

LocalStorage is a small SQLite-backed string store (get_item / set_item /
remove_item). CredentialStore is the narrow view the rest of the client uses:
it is the only place that knows the "user" and "token" keys.

Usage:
    credentials = CredentialStore(LocalStorage())
    credentials.save("abc", {"id": 1, "username": "ana"})
    credentials.get_token()          # "abc"
    credentials.clear_credentials()  # removes both keys; safe to repeat

Layer rule: client/ imports only stdlib, third-party libraries and core/.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger("sessionguard.client")

_DDL = """
CREATE TABLE IF NOT EXISTS local_storage (
    key     TEXT PRIMARY KEY,
    value   TEXT NOT NULL
);
"""

USER_KEY = "user"
TOKEN_KEY = "token"


class LocalStorage:
    """String key-value area persisted in a SQLite file.

    db_path=":memory:" gives a throwaway store, which is what tests use.
    """

    def __init__(self, db_path: Union[Path, str] = ":memory:") -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute(_DDL)
        self._conn.commit()

    def get_item(self, key: str) -> Optional[str]:
        row = self._conn.execute("SELECT value FROM local_storage WHERE key = ?", (key,)).fetchone()
        return row[0] if row is not None else None

    def set_item(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO local_storage (key, value) VALUES (?, ?)",
            (key, value),
        )
        self._conn.commit()

    def remove_item(self, key: str) -> None:
        """Delete key. Removing a key that is not there is a no-op."""
        self._conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()


class CredentialStore:
    """Cached user profile and bearer token, on top of LocalStorage."""

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def get_token(self) -> Optional[str]:
        """Return the cached token, or None if absent or unreadable."""
        try:
            return self._storage.get_item(TOKEN_KEY) or None
        except sqlite3.Error:
            logger.warning("Could not read cached token", exc_info=True)
            return None

    def get_user(self) -> Optional[dict[str, Any]]:
        """Return the cached user profile. A corrupt entry reads as None."""
        try:
            raw = self._storage.get_item(USER_KEY)
        except sqlite3.Error:
            logger.warning("Could not read cached user", exc_info=True)
            return None
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            return None
        return user if isinstance(user, dict) else None

    def save(self, token: str, user: dict[str, Any]) -> None:
        self._storage.set_item(USER_KEY, json.dumps(user))
        self._storage.set_item(TOKEN_KEY, token)

    def clear_credentials(self) -> None:
        """Remove both the user profile and the token.

        Each removal is attempted even if the other one fails.
        """
        for key in (USER_KEY, TOKEN_KEY):
            try:
                self._storage.remove_item(key)
            except sqlite3.Error:
                logger.warning("Could not remove cached %s", key, exc_info=True)
