"""Configuration management for the event registration service."""
from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .errors import ConfigurationError

logger = logging.getLogger("eventreg.config")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_BCRYPT_ROUNDS = 12
DEFAULT_SESSION_TTL = timedelta(hours=24)

_SQLITE_PREFIXES = ("sqlite:///", "sqlite://", "file:")


def _split_list(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_int(raw: Optional[str], default: int, *, name: str) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def resolve_database_path(value: Optional[str]) -> Path:
    """Turn a store connection string into the on-disk database path.

    Both plain filesystem paths and ``sqlite:///`` style URLs are accepted.
    """

    if value is None or not value.strip():
        raise ConfigurationError("EVENTREG_DATABASE_URL is not set")

    raw = value.strip()
    for prefix in _SQLITE_PREFIXES:
        if raw.startswith(prefix):
            raw = raw[len(prefix):]
            break
    if not raw:
        raise ConfigurationError(f"Database URL {value!r} does not name a file")
    return Path(raw).expanduser().resolve(strict=False)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service."""

    database_path: Path
    session_secret: str
    production: bool = False
    admin_tokens: Tuple[str, ...] = ()
    cors_origins: Tuple[str, ...] = ()
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    session_ttl: timedelta = field(default=DEFAULT_SESSION_TTL)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def secure_cookies(self) -> bool:
        return self.production

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Settings":
        """Build :class:`Settings` from ``EVENTREG_*`` environment variables."""

        env = os.environ if environ is None else environ

        database_path = resolve_database_path(env.get("EVENTREG_DATABASE_URL"))
        production = env.get("EVENTREG_ENV", "").strip().lower() == "production"

        session_secret = (env.get("EVENTREG_SESSION_SECRET") or "").strip()
        if not session_secret:
            if production:
                raise ConfigurationError(
                    "EVENTREG_SESSION_SECRET must be configured in production"
                )
            logger.warning(
                "EVENTREG_SESSION_SECRET is not set; using a random secret. Sessions"
                " will not survive a restart."
            )
            session_secret = secrets.token_urlsafe(32)

        ttl_hours = _parse_int(
            env.get("EVENTREG_SESSION_TTL_HOURS"),
            int(DEFAULT_SESSION_TTL.total_seconds() // 3600),
            name="EVENTREG_SESSION_TTL_HOURS",
        )

        return Settings(
            database_path=database_path,
            session_secret=session_secret,
            production=production,
            admin_tokens=_split_list(env.get("EVENTREG_ADMIN_TOKENS")),
            cors_origins=_split_list(env.get("EVENTREG_CORS_ORIGINS")),
            bcrypt_rounds=_parse_int(
                env.get("EVENTREG_BCRYPT_ROUNDS"),
                DEFAULT_BCRYPT_ROUNDS,
                name="EVENTREG_BCRYPT_ROUNDS",
            ),
            session_ttl=timedelta(hours=ttl_hours),
            host=(env.get("EVENTREG_HOST") or DEFAULT_HOST).strip() or DEFAULT_HOST,
            port=_parse_int(env.get("EVENTREG_PORT"), DEFAULT_PORT, name="EVENTREG_PORT"),
        )


__all__ = ["Settings", "resolve_database_path", "DEFAULT_HOST", "DEFAULT_PORT"]
