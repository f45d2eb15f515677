from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timedelta, timezone

import pytest

from eventreg.database import Database
from eventreg.errors import ConflictError, InternalError, NotFoundError
from eventreg.services import RegistrationService


def test_create_user_normalises_email(database: Database) -> None:
    user = database.create_user("Alice", "  Alice@Example.COM ", "hashed-value")

    assert user.email == "alice@example.com"
    assert user.registrations == ()
    assert database.get_password_hash("ALICE@example.com") == (user.id, "hashed-value")


def test_create_user_rejects_duplicate_email_in_any_case(database: Database) -> None:
    database.create_user("Alice", "alice@example.com", "hashed-value")

    with pytest.raises(ConflictError):
        database.create_user("Other Alice", "ALICE@EXAMPLE.COM", "another-hash")


def test_password_hash_is_stored_but_not_exposed_on_user(database: Database) -> None:
    user = database.create_user("Bob", "bob@example.com", "opaque-hash")

    assert database.get_password_hash("BOB@example.com") == (user.id, "opaque-hash")
    assert database.get_password_hash("nobody@example.com") is None
    assert not hasattr(user, "password_hash")


def test_registrations_keep_insertion_order(database: Database) -> None:
    user = database.create_user("Carol", "carol@example.com", "hash")

    database.add_registration(user.id, "conf2024")
    database.add_registration(user.id, "meetup")
    registrations = database.add_registration(user.id, "Conf2024")

    assert [item.event_name for item in registrations] == ["conf2024", "meetup", "Conf2024"]
    stored = database.get_user(user.id)
    assert stored is not None
    assert [item.event_name for item in stored.registrations] == ["conf2024", "meetup", "Conf2024"]
    assert stored.updated_at >= stored.created_at


def test_duplicate_registration_is_rejected_and_list_unchanged(database: Database) -> None:
    user = database.create_user("Dave", "dave@example.com", "hash")
    database.add_registration(user.id, "conf2024")

    with pytest.raises(ConflictError):
        database.add_registration(user.id, "conf2024")

    stored = database.get_user(user.id)
    assert stored is not None
    assert len(stored.registrations) == 1


def test_same_event_for_different_users_is_allowed(database: Database) -> None:
    first = database.create_user("Erin", "erin@example.com", "hash")
    second = database.create_user("Frank", "frank@example.com", "hash")

    database.add_registration(first.id, "conf2024")
    registrations = database.add_registration(second.id, "conf2024")

    assert len(registrations) == 1


def test_registration_for_unknown_user_raises_not_found(database: Database) -> None:
    with pytest.raises(NotFoundError):
        database.add_registration("missing-user", "conf2024")


def test_list_users_groups_registrations(database: Database) -> None:
    alice = database.create_user("Alice", "alice@example.com", "hash")
    bob = database.create_user("Bob", "bob@example.com", "hash")
    database.add_registration(bob.id, "meetup")
    database.add_registration(alice.id, "conf2024")

    users = {user.email: user for user in database.list_users()}

    assert set(users) == {"alice@example.com", "bob@example.com"}
    assert [r.event_name for r in users["alice@example.com"].registrations] == ["conf2024"]
    assert [r.event_name for r in users["bob@example.com"].registrations] == ["meetup"]


def test_purge_expired_sessions(database: Database) -> None:
    user = database.create_user("Gina", "gina@example.com", "hash")
    now = datetime.now(timezone.utc)
    database.create_session("expired", user.id, now - timedelta(minutes=1))
    database.create_session("active", user.id, now + timedelta(hours=1))

    assert database.purge_expired_sessions(now) == 1
    assert database.get_session("expired") is None
    assert database.get_session("active") is not None


def test_sqlite_failures_surface_as_internal_error(database: Database, monkeypatch) -> None:
    def _broken_connect() -> sqlite3.Connection:
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(database, "_connect", _broken_connect)

    with pytest.raises(InternalError):
        database.list_users()


def test_concurrent_registrations_for_same_event_store_one_entry(database: Database) -> None:
    user = database.create_user("Hana", "hana@example.com", "hash")
    service = RegistrationService(database)
    workers = 8
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []
    lock = threading.Lock()

    def _register() -> None:
        barrier.wait()
        try:
            service.register_for_event(user.id, "conf2024")
            outcome = "ok"
        except ConflictError:
            outcome = "conflict"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=_register) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["conflict"] * (workers - 1) + ["ok"]
    stored = database.get_user(user.id)
    assert stored is not None
    assert [item.event_name for item in stored.registrations] == ["conf2024"]
