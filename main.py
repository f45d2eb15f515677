"""Command-line interface for the event registration service."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Sequence

from dotenv import find_dotenv, load_dotenv

from eventreg.config import DEFAULT_HOST, DEFAULT_PORT, Settings
from eventreg.database import Database
from eventreg.errors import ConfigurationError

logger = logging.getLogger("eventreg.main")

_DEFAULT_SERVICE_URL = "http://localhost:3000"
_KNOWN_COMMANDS = {"serve", "init-db", "registrations"}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Event registration service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument(
        "--host",
        default=None,
        help=f"Bind address (default: EVENTREG_HOST or {DEFAULT_HOST})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Port to listen on (default: EVENTREG_PORT or {DEFAULT_PORT})",
    )

    subparsers.add_parser("init-db", help="Create the database schema")

    registrations_parser = subparsers.add_parser(
        "registrations", help="List every user's registrations from a running service"
    )
    registrations_parser.add_argument(
        "--service-url",
        default=None,
        help=f"Base URL of the running service (default: EVENTREG_SERVICE_URL or {_DEFAULT_SERVICE_URL})",
    )
    registrations_parser.add_argument(
        "--admin-token",
        default=None,
        help="Bearer token for the admin listing (default: first of EVENTREG_ADMIN_TOKENS)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in _KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        raise SystemExit(f"Configuration error: {exc}") from exc


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(settings: Settings, *, database: Database, host: str | None, port: int | None) -> None:
    from eventreg.service import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting event registration service on http://%s:%s", bind_host, bind_port)

    app = create_app(settings=settings, database=database)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


def _format_registrations(users: List[Dict[str, Any]]) -> str:
    if not users:
        return "No users are currently registered."

    lines = [f"{len(users)} user(s) found:"]
    lines.append(f"{'Name':<24}  {'Email':<32}  Events")
    lines.append("-" * 80)
    for user in users:
        events = ", ".join(item.get("eventName", "?") for item in user.get("registrations", []))
        lines.append(f"{user.get('name', ''):<24}  {user.get('email', ''):<32}  {events or '-'}")
    return "\n".join(lines)


def _show_registrations(service_url: str | None, admin_token: str | None) -> int:
    import httpx

    base_url = (service_url or os.getenv("EVENTREG_SERVICE_URL") or _DEFAULT_SERVICE_URL).rstrip("/")
    if admin_token is None:
        configured = [t.strip() for t in os.getenv("EVENTREG_ADMIN_TOKENS", "").split(",") if t.strip()]
        admin_token = configured[0] if configured else None

    headers = {"Authorization": f"Bearer {admin_token}"} if admin_token else {}
    try:
        response = httpx.get(f"{base_url}/api/admin/registrations", headers=headers, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact {base_url}: {exc}", file=sys.stderr)
        return 1

    if response.status_code != 200:
        try:
            detail = response.json().get("error", response.text)
        except ValueError:
            detail = response.text
        print(f"Request failed ({response.status_code}): {detail}", file=sys.stderr)
        return 1

    print(_format_registrations(response.json().get("users", [])))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    load_dotenv(find_dotenv(usecwd=True))
    args = _parse_args(argv)

    if args.command == "registrations":
        return _show_registrations(args.service_url, args.admin_token)

    settings = _load_settings()
    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(settings, database=database, host=args.host, port=args.port)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
