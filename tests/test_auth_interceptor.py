"""Unit tests for client/interceptor.py.

The interceptor runs against an in-memory CredentialStore and a
RecordingNavigator (conftest.py), so every side effect -- credential
deletion and navigation -- is observable without a browser or a disk.
"""

from types import SimpleNamespace

import pytest

from client.interceptor import AuthInterceptor, error_text, is_unauthorized_message


def _seed(credentials, token="abc"):
    credentials.save(token, {"id": 1, "username": "ana", "role": "user"})


# ---------------------------------------------------------------------------
# is_auth_error
# ---------------------------------------------------------------------------


class TestIsAuthError:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, status):
        assert AuthInterceptor.is_auth_error(SimpleNamespace(status_code=status)) is True

    @pytest.mark.parametrize("status", [200, 204, 301, 302, 399, 400, 404, 429, 500, 503])
    def test_other_statuses(self, status):
        assert AuthInterceptor.is_auth_error(SimpleNamespace(status_code=status)) is False

    def test_status_attribute_fallback(self):
        assert AuthInterceptor.is_auth_error(SimpleNamespace(status=403)) is True

    def test_missing_status(self):
        assert AuthInterceptor.is_auth_error(object()) is False
        assert AuthInterceptor.is_auth_error(None) is False


# ---------------------------------------------------------------------------
# handle_auth_error
# ---------------------------------------------------------------------------


class TestHandleAuthError:
    def test_unauthorized_clears_credentials_and_redirects(self, interceptor, credentials, navigator):
        _seed(credentials)
        handled = interceptor.handle_auth_error(RuntimeError("Request failed: 401 Unauthorized"))
        assert handled is True
        assert credentials.get_token() is None
        assert credentials.get_user() is None
        assert navigator.visits == ["/auth"]
        assert navigator.pathname == "/auth"

    def test_already_on_entry_page_clears_but_does_not_navigate(self, credentials, navigator):
        navigator.pathname = "/auth"
        interceptor = AuthInterceptor(credentials, navigator)
        _seed(credentials)
        assert interceptor.handle_auth_error(RuntimeError("Request failed: 401 Unauthorized")) is True
        assert credentials.get_token() is None
        assert navigator.visits == []

    def test_repeated_failures_navigate_once(self, interceptor, navigator):
        for _ in range(3):
            assert interceptor.handle_auth_error(RuntimeError("401: session expired")) is True
        assert navigator.visits == ["/auth"]

    def test_sign_in_rearms_redirect(self, interceptor, navigator):
        interceptor.handle_auth_error(RuntimeError("401: session expired"))
        interceptor.on_signed_in()
        assert navigator.pathname == "/"
        interceptor.handle_auth_error(RuntimeError("401: session expired"))
        assert navigator.visits == ["/auth", "/auth"]

    def test_sign_in_elsewhere_keeps_location(self, interceptor, navigator):
        interceptor.on_signed_in()
        assert navigator.pathname == "/dashboard"
        assert navigator.visits == []

    def test_network_timeout_is_not_auth_failure(self, interceptor, credentials, navigator):
        _seed(credentials)
        assert interceptor.handle_auth_error(RuntimeError("Network timeout")) is False
        assert credentials.get_token() == "abc"
        assert credentials.get_user() == {"id": 1, "username": "ana", "role": "user"}
        assert navigator.visits == []

    def test_deletion_without_cached_credentials(self, interceptor, credentials, navigator):
        assert interceptor.handle_auth_error("Unauthorized") is True
        assert credentials.get_token() is None
        assert navigator.visits == ["/auth"]

    @pytest.mark.parametrize(
        "error",
        [
            SimpleNamespace(message="403 ... Unauthorized access"),
            {"message": "401"},
            "HTTP 401",
            ValueError("Unauthorized: token revoked"),
        ],
    )
    def test_message_sources(self, interceptor, error):
        assert interceptor.handle_auth_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [None, 401, {"message": None}, {}, SimpleNamespace(message=None), "unauthorized", object()],
    )
    def test_unstructured_errors_are_not_auth_failures(self, interceptor, navigator, error):
        assert interceptor.handle_auth_error(error) is False
        assert navigator.visits == []

    def test_navigation_failure_does_not_raise(self, credentials):
        class _BrokenNavigator:
            pathname = "/"

            def assign(self, path):
                raise OSError("no display")

        interceptor = AuthInterceptor(credentials, _BrokenNavigator())
        _seed(credentials)
        assert interceptor.handle_auth_error("401 Unauthorized") is True
        assert credentials.get_token() is None

    def test_custom_entry_path(self, credentials, navigator):
        interceptor = AuthInterceptor(credentials, navigator, entry_path="/login")
        interceptor.handle_auth_error("401")
        assert navigator.visits == ["/login"]


class TestHeuristics:
    def test_is_unauthorized_message(self):
        assert is_unauthorized_message("401")
        assert is_unauthorized_message("Unauthorized")
        assert not is_unauthorized_message("unauthorized")
        assert not is_unauthorized_message(None)

    def test_error_text_prefers_message_attribute(self):
        class _Err(Exception):
            message = "401: from attribute"

        assert error_text(_Err("from args")) == "401: from attribute"


# ---------------------------------------------------------------------------
# add_auth_headers
# ---------------------------------------------------------------------------


class TestAddAuthHeaders:
    def test_token_added(self, interceptor, credentials):
        _seed(credentials, token="abc")
        assert interceptor.add_auth_headers({}) == {"Authorization": "Bearer abc"}

    def test_no_token_returns_input_content(self, interceptor):
        assert interceptor.add_auth_headers({}) == {}
        assert interceptor.add_auth_headers({"Accept": "application/json"}) == {"Accept": "application/json"}

    def test_input_never_mutated(self, interceptor, credentials):
        _seed(credentials)
        headers = {"Content-Type": "application/json"}
        result = interceptor.add_auth_headers(headers)
        assert headers == {"Content-Type": "application/json"}
        assert result == {"Content-Type": "application/json", "Authorization": "Bearer abc"}
        assert result is not headers

    def test_none_headers(self, interceptor, credentials):
        assert interceptor.add_auth_headers(None) == {}
        _seed(credentials, token="xyz")
        assert interceptor.add_auth_headers() == {"Authorization": "Bearer xyz"}

    def test_token_cleared_after_auth_failure(self, interceptor, credentials):
        _seed(credentials)
        interceptor.handle_auth_error("401 Unauthorized")
        assert interceptor.add_auth_headers({}) == {}
