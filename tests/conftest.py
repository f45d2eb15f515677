"""Shared fixtures: a temporary database, a cheap hasher and an app client."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from eventreg.config import Settings
from eventreg.database import Database
from eventreg.security import PasswordHasher
from eventreg.service import create_app

TEST_SECRET = "tests-secret-key"


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "eventreg.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=tmp_path / "eventreg.sqlite3",
        session_secret=TEST_SECRET,
        bcrypt_rounds=4,
        session_ttl=timedelta(hours=24),
    )


@pytest.fixture()
def client(settings: Settings, database: Database, hasher: PasswordHasher):
    app = create_app(settings=settings, database=database, hasher=hasher)
    with TestClient(app) as test_client:
        yield test_client
