"""
auth/models.py -- Domain dataclass for authenticated users.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work.

Layer rule: no imports from api/, session/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity that can open a session or hold a bearer token.

    hashed_password is a bcrypt hash and never leaves the server; routes map
    User to api.models.UserResponse before serialising.
    """

    username: str
    hashed_password: str
    role: str = "user"  # "admin", "user"
    id: int | None = None
    email: str | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True
