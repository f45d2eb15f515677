"""Event registration service: accounts, sessions and per-user event sign-ups."""

from __future__ import annotations

from typing import Any

from .config import Settings, resolve_database_path
from .database import Database


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the FastAPI application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "Settings",
    "resolve_database_path",
    "create_app",
]
