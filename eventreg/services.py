"""Account and event registration logic.

Both services receive their collaborators explicitly so tests can hand in a
temporary database and a cheap password hasher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .database import Database, normalize_email
from .errors import AuthError, InternalError, ValidationError
from .models import Registration, User
from .security import PasswordHasher
from .sessions import SessionManager

logger = logging.getLogger("eventreg.auth")
registration_logger = logging.getLogger("eventreg.registrations")

INVALID_CREDENTIALS = "Invalid email or password"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class AuthResult:
    """A signed-in user together with the session cookie value issued for them."""

    user: User
    session_token: str


class AuthService:
    """Validate credentials and manage login sessions."""

    def __init__(
        self,
        database: Database,
        session_manager: SessionManager,
        hasher: PasswordHasher,
    ) -> None:
        self._database = database
        self._sessions = session_manager
        self._hasher = hasher

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        *,
        previous_token: Optional[str] = None,
    ) -> AuthResult:
        if _is_blank(name) or _is_blank(email) or not password:
            raise ValidationError("All fields required")

        password_hash = self._hasher.hash(password)
        user = self._database.create_user(name.strip(), normalize_email(email), password_hash)
        logger.info("Registered user %s", user.id)
        return AuthResult(user=user, session_token=self._start_session(user.id, previous_token))

    def login(
        self,
        email: Optional[str],
        password: Optional[str],
        *,
        previous_token: Optional[str] = None,
    ) -> AuthResult:
        if _is_blank(email) or not password:
            raise ValidationError("Missing credentials")

        record = self._database.get_password_hash(email)
        if record is None:
            self._hasher.dummy_verify()
            logger.warning("Failed login attempt for %s", normalize_email(email))
            raise AuthError(INVALID_CREDENTIALS)

        user_id, password_hash = record
        if not self._hasher.verify(password, password_hash):
            logger.warning("Failed login attempt for %s", normalize_email(email))
            raise AuthError(INVALID_CREDENTIALS)

        user = self._database.get_user(user_id)
        if user is None:
            raise AuthError(INVALID_CREDENTIALS)

        logger.info("User %s signed in", user.id)
        return AuthResult(user=user, session_token=self._start_session(user.id, previous_token))

    def logout(self, session_token: Optional[str]) -> None:
        try:
            self._sessions.destroy(session_token)
        except InternalError as exc:
            raise InternalError("Could not log out") from exc

    def current_user(self, session_token: Optional[str]) -> Optional[User]:
        """Resolve the session to its user, or ``None`` when nobody is signed in."""

        user_id = self._sessions.resolve(session_token)
        if user_id is None:
            return None
        user = self._database.get_user(user_id)
        if user is None:
            self._sessions.destroy(session_token)
        return user

    def require_user_id(self, session_token: Optional[str]) -> str:
        user_id = self._sessions.resolve(session_token)
        if user_id is None:
            raise AuthError("Unauthorized")
        return user_id

    def _start_session(self, user_id: str, previous_token: Optional[str]) -> str:
        if previous_token:
            self._sessions.destroy(previous_token)
        return self._sessions.create(user_id)


class RegistrationService:
    """Record event registrations, at most one per user and event name."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def register_for_event(self, user_id: str, event_name: Optional[str]) -> List[Registration]:
        if _is_blank(event_name):
            raise ValidationError("Event name required")

        # The insert is conditional on (user, event) being absent, so two
        # concurrent requests cannot both succeed.
        registrations = self._database.add_registration(user_id, event_name)
        registration_logger.info("User %s registered for event %r", user_id, event_name)
        return registrations

    def list_all_registrations(self) -> List[User]:
        return self._database.list_users()


__all__ = ["AuthResult", "AuthService", "RegistrationService", "INVALID_CREDENTIALS"]
