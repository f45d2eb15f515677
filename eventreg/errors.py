"""Error types shared by the services and the HTTP layer."""

from __future__ import annotations


class EventRegError(Exception):
    """Base class for failures that map onto an HTTP status code."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(EventRegError):
    status_code = 400
    default_message = "Missing required fields"


class AuthError(EventRegError):
    status_code = 401
    default_message = "Invalid email or password"


class ForbiddenError(EventRegError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(EventRegError):
    status_code = 404
    default_message = "Not found"


class ConflictError(EventRegError):
    status_code = 409
    default_message = "Conflict"


class InternalError(EventRegError):
    """Store or infrastructure failure; details stay in the server log."""

    status_code = 500


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing at startup."""


__all__ = [
    "EventRegError",
    "ValidationError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "ConfigurationError",
]
