"""
client/interceptor.py -- Authentication failure detection and recovery.

AuthInterceptor sits between ApiClient and the network:

  add_auth_headers(headers)  -- outbound: attach "Authorization: Bearer <token>"
                                when a token is cached. Returns a new dict.
  is_auth_error(response)    -- inbound: status 401 or 403.
  handle_auth_error(error)   -- inbound: if the error text says 401/Unauthorized,
                                drop cached credentials and navigate to the
                                sign-in page (unless already there). Returns
                                True when it handled the error.
  on_signed_in()             -- after a successful sign-in: move the
                                remembered location off the sign-in page so
                                the next failure redirects again.

None of these raise. Missing status, missing message or missing token all
mean "nothing to do".

The message test is a substring heuristic on purpose: it is the contract the
server's error bodies already satisfy. It lives in is_unauthorized_message()
alone so a structured error code can replace it later.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from client.navigation import Navigator
from client.storage import CredentialStore

logger = logging.getLogger("sessionguard.client")

AUTH_ENTRY_PATH = "/auth"
HOME_PATH = "/"
AUTH_ERROR_STATUSES = frozenset({401, 403})
_UNAUTHORIZED_TOKENS = ("401", "Unauthorized")


def is_unauthorized_message(text: Optional[str]) -> bool:
    """True if text contains "401" or "Unauthorized" (case-sensitive)."""
    if not isinstance(text, str):
        return False
    return any(token in text for token in _UNAUTHORIZED_TOKENS)


def error_text(error: Any) -> Optional[str]:
    """Best-effort textual form of an arbitrary error value.

    Order: a .message attribute, a "message" mapping key, the value itself if
    it is a str, then str() of an exception. Anything else yields None.
    """
    if error is None:
        return None
    try:
        message = getattr(error, "message", None)
        if isinstance(message, str):
            return message
        if isinstance(error, Mapping):
            message = error.get("message")
            return message if isinstance(message, str) else None
        if isinstance(error, str):
            return error
        if isinstance(error, BaseException):
            return str(error)
    except Exception:
        logger.debug("Could not extract text from %r", type(error), exc_info=True)
    return None


class AuthInterceptor:
    """Credential-aware request/response hooks for one client."""

    def __init__(
        self,
        credentials: CredentialStore,
        navigator: Navigator,
        entry_path: str = AUTH_ENTRY_PATH,
        home_path: str = HOME_PATH,
    ) -> None:
        self.credentials = credentials
        self.navigator = navigator
        self.entry_path = entry_path
        self.home_path = home_path

    @staticmethod
    def is_auth_error(response: Any) -> bool:
        """True if response (or error) carries status 401 or 403.

        Accepts anything with .status_code or .status: a requests.Response,
        an ApiError, a TestClient response. ApiClient uses it to tell a
        refused request from an unauthenticated one.
        """
        status = getattr(response, "status_code", None)
        if status is None:
            status = getattr(response, "status", None)
        return status in AUTH_ERROR_STATUSES

    def handle_auth_error(self, error: Any) -> bool:
        if not is_unauthorized_message(error_text(error)):
            return False

        self.credentials.clear_credentials()
        logger.info("Authentication failure detected; cached credentials cleared")

        try:
            if self.navigator.pathname != self.entry_path:
                self.navigator.assign(self.entry_path)
        except Exception:
            logger.warning("Redirect to %s failed", self.entry_path, exc_info=True)
        return True

    def on_signed_in(self) -> None:
        """Leave the sign-in page without opening anything."""
        try:
            if self.navigator.pathname == self.entry_path:
                self.navigator.replace(self.home_path)
        except Exception:
            logger.warning("Could not leave %s after sign-in", self.entry_path, exc_info=True)

    def add_auth_headers(self, headers: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        base = dict(headers) if headers else {}
        token = self.credentials.get_token()
        if token:
            return {**base, "Authorization": f"Bearer {token}"}
        return base
