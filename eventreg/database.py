"""SQLite-backed persistence for users, their registrations and sessions."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import ConflictError, InternalError, NotFoundError
from .models import Registration, User

logger = logging.getLogger("eventreg.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Database:
    """Simple wrapper around SQLite for persisting users and sessions.

    Registrations live in their own table keyed by ``(user_id, event_name)``
    so the duplicate check and the append happen in one statement.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False, timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("Could not open database at %s: %s", self._path, exc)
            raise InternalError() from exc

        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            logger.error("Database operation failed: %s", exc)
            raise InternalError() from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS registrations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    event_name TEXT NOT NULL,
                    registered_at TEXT NOT NULL,
                    UNIQUE (user_id, event_name)
                );

                CREATE TABLE IF NOT EXISTS sessions (
                    token_digest TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_registrations_user_id ON registrations(user_id);
                CREATE INDEX IF NOT EXISTS idx_sessions_expires_at ON sessions(expires_at);
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, name: str, email: str, password_hash: str) -> User:
        """Insert a new user. ``password_hash`` must already be hashed."""

        if not password_hash:
            raise ValueError("Password hash must not be empty")

        user_id = uuid.uuid4().hex
        created_at = _current_timestamp()
        normalized_email = normalize_email(email)

        with self._transaction() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (id, name, email, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        name,
                        normalized_email,
                        password_hash,
                        _serialize_datetime(created_at),
                        _serialize_datetime(created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError("Email already registered") from exc

        return User(
            id=user_id,
            name=name,
            email=normalized_email,
            created_at=created_at,
            updated_at=created_at,
        )

    def get_user(self, user_id: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                return None
            registrations = self._load_registrations(conn, user_id)
        return self._row_to_user(row, registrations)

    def get_password_hash(self, email: str) -> Optional[Tuple[str, str]]:
        """Return ``(user_id, password_hash)`` for the given email, if known."""

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, password_hash FROM users WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()
        if row is None:
            return None
        return row["id"], row["password_hash"]

    def list_users(self) -> List[User]:
        """Return every user with their registrations, oldest account first."""

        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, rowid").fetchall()
            registration_rows = conn.execute(
                "SELECT user_id, event_name, registered_at FROM registrations ORDER BY id"
            ).fetchall()

        grouped: Dict[str, List[Registration]] = {}
        for item in registration_rows:
            grouped.setdefault(item["user_id"], []).append(self._row_to_registration(item))
        return [self._row_to_user(row, grouped.get(row["id"], [])) for row in rows]

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------
    def add_registration(self, user_id: str, event_name: str) -> List[Registration]:
        """Append a registration and return the user's full, ordered list.

        Raises :class:`NotFoundError` for unknown users and
        :class:`ConflictError` when the user already holds the event.
        """

        registered_at = _current_timestamp()
        with self._transaction() as conn:
            row = conn.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                raise NotFoundError("User not found")

            cursor = conn.execute(
                """
                INSERT INTO registrations (user_id, event_name, registered_at)
                VALUES (?, ?, ?)
                ON CONFLICT (user_id, event_name) DO NOTHING
                """,
                (user_id, event_name, _serialize_datetime(registered_at)),
            )
            if cursor.rowcount == 0:
                raise ConflictError("Already registered for this event")

            conn.execute(
                "UPDATE users SET updated_at = ? WHERE id = ?",
                (_serialize_datetime(registered_at), user_id),
            )
            registrations = self._load_registrations(conn, user_id)
        return registrations

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def create_session(self, token_digest: str, user_id: str, expires_at: datetime) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO sessions (token_digest, user_id, created_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    token_digest,
                    user_id,
                    _serialize_datetime(_current_timestamp()),
                    _serialize_datetime(expires_at),
                ),
            )

    def get_session(self, token_digest: str) -> Optional[Tuple[str, datetime]]:
        """Return ``(user_id, expires_at)`` for a stored session."""

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT user_id, expires_at FROM sessions WHERE token_digest = ?",
                (token_digest,),
            ).fetchone()
        if row is None:
            return None
        return row["user_id"], _parse_datetime(row["expires_at"])

    def delete_session(self, token_digest: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM sessions WHERE token_digest = ?", (token_digest,))

    def purge_expired_sessions(self, now: Optional[datetime] = None) -> int:
        """Remove expired sessions and return how many were deleted."""

        cutoff = now or _current_timestamp()
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?",
                (_serialize_datetime(cutoff),),
            )
            deleted = cursor.rowcount
        return deleted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load_registrations(self, conn: sqlite3.Connection, user_id: str) -> List[Registration]:
        rows = conn.execute(
            "SELECT event_name, registered_at FROM registrations WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [self._row_to_registration(row) for row in rows]

    @staticmethod
    def _row_to_registration(row: sqlite3.Row) -> Registration:
        return Registration(
            event_name=row["event_name"],
            registered_at=_parse_datetime(row["registered_at"]),
        )

    @staticmethod
    def _row_to_user(row: sqlite3.Row, registrations: List[Registration]) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
            registrations=tuple(registrations),
        )


__all__ = ["Database", "normalize_email"]
