"""Server-side session handling backed by the database."""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, Signer

from .config import DEFAULT_SESSION_TTL
from .database import Database

logger = logging.getLogger("eventreg.sessions")


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionManager:
    """Generate, validate, and revoke login sessions.

    The cookie value is a random token signed with the session secret; only a
    digest of the token is stored, alongside the user id and expiry.
    """

    def __init__(
        self,
        database: Database,
        secret: str,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
    ) -> None:
        if not secret:
            raise ValueError("A session secret must be provided")
        self._database = database
        self._signer = Signer(secret, salt="eventreg.session")
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cookie_max_age(self) -> int:
        return int(self._ttl.total_seconds())

    def create(self, user_id: str) -> str:
        self._database.purge_expired_sessions(self._now())
        token = secrets.token_urlsafe(32)
        self._database.create_session(_digest(token), user_id, self._now() + self._ttl)
        return self._signer.sign(token).decode("ascii")

    def resolve(self, cookie_value: Optional[str]) -> Optional[str]:
        token = self._unsign(cookie_value)
        if token is None:
            return None
        digest = _digest(token)
        record = self._database.get_session(digest)
        if record is None:
            return None
        user_id, expires_at = record
        if expires_at <= self._now():
            self._database.delete_session(digest)
            return None
        return user_id

    def destroy(self, cookie_value: Optional[str]) -> None:
        token = self._unsign(cookie_value)
        if token is None:
            return
        self._database.delete_session(_digest(token))

    def _unsign(self, cookie_value: Optional[str]) -> Optional[str]:
        if not cookie_value:
            return None
        try:
            return self._signer.unsign(cookie_value).decode("utf-8")
        except BadSignature:
            logger.debug("Rejected session cookie with an invalid signature")
            return None

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["SessionManager"]
