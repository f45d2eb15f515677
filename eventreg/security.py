"""Password hashing and admin token helpers."""
from __future__ import annotations

import secrets
from typing import Iterable, List

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from passlib.exc import PasswordValueError

from .config import DEFAULT_BCRYPT_ROUNDS
from .errors import AuthError, ForbiddenError, ValidationError


class PasswordHasher:
    """Salted bcrypt hashing backed by passlib."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password must not be empty")
        try:
            return self._context.hash(password)
        except PasswordValueError as exc:
            raise ValidationError("Password contains unsupported characters") from exc

    def verify(self, password: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            return False

    def dummy_verify(self) -> None:
        """Spend roughly the time of a real check so unknown emails are not revealed."""

        self._context.dummy_verify()


class TokenAuth:
    """Bearer token authentication using constant-time comparisons."""

    def __init__(self, tokens: Iterable[str]):
        token_list: List[str] = [token.strip() for token in tokens if token.strip()]
        if not token_list:
            raise ValueError("At least one admin token must be provided")
        self._tokens = token_list
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> None:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise AuthError("Missing bearer token")

        provided = credentials.credentials
        for token in self._tokens:
            if secrets.compare_digest(provided, token):
                return None

        raise ForbiddenError("Invalid admin token")


__all__ = ["PasswordHasher", "TokenAuth"]
