import pytest

from main import _format_registrations, _parse_args, main


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_registrations_subcommand_available() -> None:
    args = _parse_args(["registrations", "--service-url", "http://example.test"])
    assert args.command == "registrations"
    assert args.service_url == "http://example.test"


def test_missing_database_url_exits(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("EVENTREG_DATABASE_URL", raising=False)

    with pytest.raises(SystemExit):
        main(["init-db"])


def test_init_db_creates_schema(monkeypatch, tmp_path) -> None:
    db_path = tmp_path / "cli.sqlite3"
    monkeypatch.setenv("EVENTREG_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("EVENTREG_SESSION_SECRET", "secret")

    assert main(["init-db"]) == 0
    assert db_path.exists()


def test_init_db_reads_dotenv_file(monkeypatch, tmp_path) -> None:
    db_path = tmp_path / "from-dotenv.sqlite3"
    (tmp_path / ".env").write_text(
        f"EVENTREG_DATABASE_URL=sqlite:///{db_path}\nEVENTREG_SESSION_SECRET=dotenv-secret\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    for name in ("EVENTREG_DATABASE_URL", "EVENTREG_SESSION_SECRET"):
        # Record the original value so variables loaded from .env are undone.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

    assert main(["init-db"]) == 0
    assert db_path.exists()


def test_format_registrations() -> None:
    output = _format_registrations(
        [
            {
                "name": "Alice",
                "email": "alice@x.com",
                "registrations": [{"eventName": "conf2024"}, {"eventName": "meetup"}],
            },
            {"name": "Bob", "email": "bob@x.com", "registrations": []},
        ]
    )

    assert "2 user(s) found" in output
    assert "conf2024, meetup" in output
    assert _format_registrations([]) == "No users are currently registered."
