"""Tests for main.py -- CLI commands over a mocked ApiClient."""

import argparse
from unittest.mock import MagicMock

from client.api import ApiError
from client.navigation import BrowserNavigator
from main import _report, build_client, cmd_login, cmd_logout, cmd_status, cmd_whoami


def test_build_client_wires_shared_credentials(local_storage):
    client = build_client("http://api.test", storage=local_storage)
    assert client.base_url == "http://api.test"
    assert isinstance(client.interceptor.navigator, BrowserNavigator)
    client.interceptor.credentials.save("tok", {"id": 1})
    assert client.interceptor.add_auth_headers() == {"Authorization": "Bearer tok"}


def test_whoami_without_token(capsys):
    client = MagicMock()
    client.interceptor.credentials.get_token.return_value = None
    assert cmd_whoami(client, argparse.Namespace()) == 1
    client.get_json.assert_not_called()
    assert "Not signed in" in capsys.readouterr().out


def test_whoami_with_token(capsys):
    client = MagicMock()
    client.interceptor.credentials.get_token.return_value = "tok"
    client.get_json.return_value = {"username": "ana", "role": "user"}
    assert cmd_whoami(client, argparse.Namespace()) == 0
    assert "ana (user)" in capsys.readouterr().out


def test_login_uses_password_flag(capsys):
    client = MagicMock()
    client.login.return_value = {"username": "ana", "role": "admin"}
    assert cmd_login(client, argparse.Namespace(username="ana", password="pw")) == 0
    client.login.assert_called_once_with("ana", "pw")
    assert "Signed in as ana" in capsys.readouterr().out


def test_logout(capsys):
    client = MagicMock()
    assert cmd_logout(client, argparse.Namespace()) == 0
    client.logout.assert_called_once_with()


def test_report_messages(capsys):
    handled = ApiError(401, "Unauthorized")
    handled.auth_handled = True
    _report(handled)
    _report(ApiError(500, "database error", retry_after=5))
    _report(ApiError(404, "missing"))
    out = capsys.readouterr().out
    assert "run 'login' again" in out
    assert "Try again in 5s" in out
    assert "404: missing" in out


def test_browser_navigator_tracks_path_without_opening():
    navigator = BrowserNavigator("http://app.test", pathname="/dashboard", open_browser=False)
    navigator.assign("/auth")
    assert navigator.pathname == "/auth"


def test_status_reports_lost_session(capsys):
    client = MagicMock()
    client.interceptor.credentials.get_user.return_value = {"username": "ana"}
    client.session_lost.return_value = True
    assert cmd_status(client, argparse.Namespace()) == 1
    assert "Session for ana was lost" in capsys.readouterr().out


def test_status_active_and_signed_out(capsys):
    client = MagicMock()
    client.interceptor.credentials.get_user.return_value = {"username": "ana"}
    client.session_lost.return_value = False
    assert cmd_status(client, argparse.Namespace()) == 0

    client.interceptor.credentials.get_user.return_value = None
    assert cmd_status(client, argparse.Namespace()) == 1
    out = capsys.readouterr().out
    assert "is active" in out
    assert "Not signed in" in out
