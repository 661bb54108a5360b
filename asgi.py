"""
asgi.py -- Application entry point for SessionGuard.

Run with:  uvicorn asgi:app --reload

api/main.py owns the app, its middleware stack and routers. This module is
the stable import path for ASGI servers.
"""

from api.main import app

__all__ = ["app"]
