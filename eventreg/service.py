"""Application factory wiring storage, services, middleware and routes."""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import register_api_routes
from .config import Settings
from .database import Database
from .errors import EventRegError
from .security import PasswordHasher, TokenAuth
from .services import AuthService, RegistrationService
from .sessions import SessionManager
from .web import install_security_headers, register_static_routes, security_headers

logger = logging.getLogger("eventreg.service")

GENERIC_SERVER_ERROR = "Server error"


def _initialise_database(database: Database) -> Database:
    database.initialize()
    return database


def _open_admin_access() -> None:
    return None


def _build_admin_guard(settings: Settings):
    if settings.admin_tokens:
        return TokenAuth(settings.admin_tokens)
    logger.warning(
        "EVENTREG_ADMIN_TOKENS is not set; /api/admin/registrations is reachable"
        " without authentication."
    )
    return _open_admin_access


def _describe_validation_errors(exc: RequestValidationError) -> List[str]:
    fields: List[str] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        label = ".".join(location) or "body"
        if label not in fields:
            fields.append(label)
    return fields


def register_exception_handlers(app: FastAPI, *, production: bool = False) -> None:
    """Translate domain errors into ``{"error": message}`` responses."""

    # Unhandled exceptions are answered outside the middleware stack, so the
    # hardening headers are attached here directly.
    fallback_headers = security_headers(production=production)

    @app.exception_handler(EventRegError)
    async def handle_domain_error(request: Request, exc: EventRegError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request %s %s failed: %s",
                request.method,
                request.url.path,
                exc.__cause__ or exc,
                exc_info=exc,
            )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = _describe_validation_errors(exc)
        content: Dict[str, object] = {"error": "Missing or invalid fields"}
        if fields:
            content["fields"] = fields
        return JSONResponse(content, status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception for %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            {"error": GENERIC_SERVER_ERROR},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            headers=fallback_headers,
        )


def create_app(
    *,
    settings: Settings | None = None,
    database: Database | None = None,
    hasher: PasswordHasher | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for event registration."""

    app_settings = settings or Settings.from_env()
    db = database or Database(app_settings.database_path)
    _initialise_database(db)

    session_manager = SessionManager(
        db,
        app_settings.session_secret,
        ttl=app_settings.session_ttl,
    )
    auth_service = AuthService(
        db,
        session_manager,
        hasher or PasswordHasher(rounds=app_settings.bcrypt_rounds),
    )
    registration_service = RegistrationService(db)

    if not app_settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Set EVENTREG_ENV=production"
            " when serving over HTTPS."
        )

    app = FastAPI(
        title="Event Registration",
        version="0.1.0",
        description="Accounts and per-user event registrations.",
    )
    app.state.settings = app_settings
    app.state.database = db
    app.state.session_manager = session_manager
    app.state.auth_service = auth_service
    app.state.registration_service = registration_service

    install_security_headers(app, production=app_settings.production)
    if app_settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(app_settings.cors_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Content-Type", "Authorization"],
        )

    register_exception_handlers(app, production=app_settings.production)
    register_api_routes(
        app,
        auth_service,
        registration_service,
        secure_cookies=app_settings.secure_cookies,
        admin_guard=_build_admin_guard(app_settings),
    )

    @app.get("/healthz", include_in_schema=False)
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    register_static_routes(app)
    return app


__all__ = ["create_app", "register_exception_handlers"]
