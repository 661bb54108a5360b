#!/usr/bin/env python3
"""
SessionGuard client -- sign in, check, and sign out against a SessionGuard API.

Usage:
  python main.py login alice
  python main.py whoami
  python main.py status
  python main.py logout
  python main.py whoami --base-url http://localhost:8000 --open-browser

Environment variables:
  SESSIONGUARD_API_BASE_URL   API origin (default http://localhost:8000)
  SESSIONGUARD_STORAGE_PATH   Local credential store (default ~/.sessionguard/local_storage.db)
  SESSIONGUARD_AUTH_ENTRY_PATH  Sign-in page opened after an auth failure (default /auth)
"""

import argparse
import getpass
import sys
from typing import Optional

import requests

from client.api import ApiClient, ApiError
from client.interceptor import AuthInterceptor
from client.navigation import BrowserNavigator
from client.storage import CredentialStore, LocalStorage
from core.config import get_client_settings


def build_client(base_url: str, open_browser: bool = False, storage: Optional[LocalStorage] = None) -> ApiClient:
    """Wire storage, navigator and interceptor into an ApiClient."""
    settings = get_client_settings()
    credentials = CredentialStore(storage or LocalStorage(settings.storage_path))
    navigator = BrowserNavigator(base_url, open_browser=open_browser)
    interceptor = AuthInterceptor(credentials, navigator, entry_path=settings.auth_entry_path)
    return ApiClient(base_url, interceptor, timeout=settings.request_timeout)


def _report(exc: ApiError) -> None:
    if exc.auth_handled:
        print("  [!] Not signed in (or session expired). Cached credentials cleared -- run 'login' again.")
    elif exc.retry_after is not None:
        print(f"  [!] Server is temporarily unavailable. Try again in {exc.retry_after}s.")
    else:
        print(f"  [!] Request failed: {exc.message}")


def cmd_login(client: ApiClient, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    user = client.login(args.username, password)
    print(f"  Signed in as {user['username']} ({user['role']}).")
    return 0


def cmd_whoami(client: ApiClient, args: argparse.Namespace) -> int:
    if client.interceptor.credentials.get_token() is None:
        print("  Not signed in.")
        return 1
    user = client.get_json("/auth/me")
    print(f"  {user['username']} ({user['role']})")
    return 0


def cmd_status(client: ApiClient, args: argparse.Namespace) -> int:
    remembered = client.interceptor.credentials.get_user()
    if remembered is None:
        print("  Not signed in.")
        return 1
    if client.session_lost():
        print(f"  Session for {remembered.get('username', '?')} was lost -- run 'login' again.")
        return 1
    print(f"  Session for {remembered.get('username', '?')} is active.")
    return 0


def cmd_logout(client: ApiClient, args: argparse.Namespace) -> int:
    client.logout()
    print("  Signed out.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_client_settings()
    parser = argparse.ArgumentParser(
        prog="sessionguard",
        description="Sign in to a SessionGuard API and manage cached credentials.",
    )
    parser.add_argument(
        "--base-url",
        default=settings.api_base_url,
        metavar="URL",
        help=f"API origin (default: {settings.api_base_url})",
    )
    parser.add_argument(
        "--open-browser",
        action="store_true",
        help="Open the sign-in page in a browser when authentication fails",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in and cache the token locally")
    login.add_argument("username")
    login.add_argument("--password", help="Password (prompted if omitted)")
    login.set_defaults(func=cmd_login)

    whoami = sub.add_parser("whoami", help="Show the signed-in user")
    whoami.set_defaults(func=cmd_whoami)

    status = sub.add_parser("status", help="Check whether the remembered session is still alive")
    status.set_defaults(func=cmd_status)

    logout = sub.add_parser("logout", help="End the session and clear cached credentials")
    logout.set_defaults(func=cmd_logout)

    args = parser.parse_args(argv)
    client = build_client(args.base_url, open_browser=args.open_browser)
    try:
        return args.func(client, args)
    except ApiError as exc:
        _report(exc)
        return 1
    except requests.RequestException as exc:
        print(f"  [!] Could not reach {args.base_url}: {exc}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
