"""Domain models for users and their event registrations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class Registration:
    """A user's claim on a named event."""

    event_name: str
    registered_at: datetime


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the database.

    The password hash is deliberately not part of this model so it can never
    leak into a response.
    """

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    registrations: Tuple[Registration, ...] = ()


__all__ = ["Registration", "User"]
