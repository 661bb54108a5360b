"""
client/navigation.py -- Injectable navigation capability.

The interceptor only needs two things from "the browser": the current path
and a way to go somewhere else. Navigator is that seam. BrowserNavigator
drives the real desktop browser through webbrowser; tests substitute a
recording stub.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Protocol
from urllib.parse import urljoin, urlparse

logger = logging.getLogger("sessionguard.client")


class Navigator(Protocol):
    @property
    def pathname(self) -> str: ...

    def assign(self, path: str) -> None: ...

    def replace(self, path: str) -> None: ...


class BrowserNavigator:
    """Open pages of one origin in the user's browser and remember where we are.

    assign() is fire-and-forget: failure to launch a browser is logged, the
    location is still updated so a repeat failure does not retry the launch.
    replace() only moves the remembered location; nothing is opened.
    """

    def __init__(self, origin: str, pathname: str = "/", open_browser: bool = True) -> None:
        self.origin = origin.rstrip("/") + "/"
        self._pathname = pathname
        self.open_browser = open_browser

    @property
    def pathname(self) -> str:
        return self._pathname

    def assign(self, path: str) -> None:
        url = urljoin(self.origin, path)
        self._pathname = urlparse(url).path or "/"
        if not self.open_browser:
            return
        logger.info("Opening %s", url)
        if not webbrowser.open(url):
            logger.warning("No browser available; visit %s to sign in again", url)

    def replace(self, path: str) -> None:
        self._pathname = urlparse(urljoin(self.origin, path)).path or "/"
