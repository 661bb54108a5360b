"""
client/api.py -- requests-based client for the SessionGuard API.

Every outbound request goes through AuthInterceptor.add_auth_headers(); every
non-2xx response becomes an ApiError that is handed to
AuthInterceptor.handle_auth_error() before it is raised. The caller reads
ApiError.auth_handled to decide whether to report the failure itself
(a handled auth failure has already sent the user to the sign-in page).

Retry-After on a 5xx is surfaced as ApiError.retry_after. This client never
retries on its own; that decision belongs to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

import requests

from client.interceptor import AuthInterceptor

logger = logging.getLogger("sessionguard.client")

UnauthorizedBehavior = Literal["throw", "return_none"]


class ApiError(Exception):
    """A non-2xx response. message is "<status>: <body text or reason>"."""

    def __init__(self, status_code: int, text: str, retry_after: Optional[int] = None) -> None:
        self.status_code = status_code
        self.text = text
        self.retry_after = retry_after
        self.auth_handled = False
        self.message = f"{status_code}: {text}"
        super().__init__(self.message)


def _retry_after(response: requests.Response) -> Optional[int]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def raise_for_status(response: requests.Response) -> None:
    """Raise ApiError for any non-2xx response."""
    if response.ok:
        return
    text = response.text or response.reason or ""
    raise ApiError(response.status_code, text, _retry_after(response))


class ApiClient:
    """Thin JSON client bound to one API origin.

    Usage:
        client = ApiClient("http://localhost:8000", interceptor)
        client.login("ana", "secret")
        client.current_user()
    """

    def __init__(
        self,
        base_url: str,
        interceptor: AuthInterceptor,
        session: Optional[requests.Session] = None,
        api_prefix: str = "/api/v1",
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.interceptor = interceptor
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        if not path.startswith(self.api_prefix):
            path = self.api_prefix + path
        return self.base_url + path

    def request(self, method: str, path: str, data: Any = None, **kwargs: Any) -> requests.Response:
        """Send a request and return the response, or raise ApiError.

        data, when given, is sent as a JSON body. Extra keyword arguments are
        passed to requests (e.g. params=, timeout=).
        """
        headers = {"Content-Type": "application/json"} if data is not None else {}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self.timeout)
        response = self.session.request(
            method,
            self.url_for(path),
            json=data,
            headers=self.interceptor.add_auth_headers(headers),
            **kwargs,
        )
        try:
            raise_for_status(response)
        except ApiError as exc:
            exc.auth_handled = self.interceptor.handle_auth_error(exc)
            if self.interceptor.is_auth_error(exc) and not exc.auth_handled:
                logger.info("%s %s refused with %d; cached credentials kept", method, path, exc.status_code)
            if exc.retry_after is not None:
                logger.info(
                    "%s %s failed with %d; server suggests retry in %ds",
                    method,
                    path,
                    exc.status_code,
                    exc.retry_after,
                )
            raise
        return response

    def get_json(self, path: str, on_401: UnauthorizedBehavior = "throw") -> Any:
        """GET path and decode JSON.

        on_401="return_none" turns a 401 into None without touching cached
        credentials -- for probes such as "is anyone signed in?".
        """
        if on_401 == "return_none":
            response = self.session.get(
                self.url_for(path), headers=self.interceptor.add_auth_headers(), timeout=self.timeout
            )
            if response.status_code == 401:
                return None
            raise_for_status(response)
            return response.json()
        return self.request("GET", path).json()

    # ------------------------------------------------------------------
    # Auth helpers
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> dict[str, Any]:
        """Sign in and cache the returned user and token."""
        body = self.request("POST", "/auth/login", {"username": username, "password": password}).json()
        self.interceptor.credentials.save(body["access_token"], body["user"])
        self.interceptor.on_signed_in()
        return body["user"]

    def logout(self) -> None:
        """End the server session and drop cached credentials, even if the call fails."""
        try:
            self.request("POST", "/auth/logout")
        finally:
            self.interceptor.credentials.clear_credentials()

    def current_user(self) -> Optional[dict[str, Any]]:
        return self.get_json("/auth/me", on_401="return_none")

    def session_lost(self, probes: int = 2) -> bool:
        """True when a remembered user is no longer recognised by the server.

        Nobody remembered means nothing was lost. Otherwise the current user
        is probed up to `probes` times; any answer ends the check. Cached
        credentials are left for the caller to clear.
        """
        remembered = self.interceptor.credentials.get_user()
        if remembered is None:
            return False
        for _ in range(max(probes, 1)):
            if self.current_user() is not None:
                return False
        logger.info("Session for %s was lost", remembered.get("username", "unknown user"))
        return True
