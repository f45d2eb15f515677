"""Static client delivery and browser-facing response hardening."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import FileResponse, JSONResponse

logger = logging.getLogger("eventreg.web")

STATIC_DIR = Path(__file__).resolve().parent / "static"

_BASE_SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline';"
        " img-src 'self' data:; object-src 'none'; frame-ancestors 'self'; base-uri 'self'"
    ),
}

_HSTS_HEADER = ("Strict-Transport-Security", "max-age=15552000; includeSubDomains")


def security_headers(*, production: bool) -> Dict[str, str]:
    headers = dict(_BASE_SECURITY_HEADERS)
    if production:
        headers[_HSTS_HEADER[0]] = _HSTS_HEADER[1]
    return headers


def install_security_headers(app: FastAPI, *, production: bool) -> None:
    """Attach conservative security headers to every response."""

    headers = security_headers(production=production)

    @app.middleware("http")
    async def _apply_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response


def _resolve_static_file(static_dir: Path, requested: str) -> Path | None:
    if not requested:
        return None
    candidate = (static_dir / requested).resolve(strict=False)
    try:
        candidate.relative_to(static_dir)
    except ValueError:
        logger.warning("Refused static path outside of %s: %s", static_dir, requested)
        return None
    if candidate.is_file():
        return candidate
    return None


def register_static_routes(app: FastAPI, *, static_dir: Path = STATIC_DIR) -> None:
    """Serve the single-page client; unknown paths fall back to ``index.html``.

    Must be registered after every other GET route since it matches anything.
    """

    static_root = static_dir.resolve(strict=False)
    index_file = static_root / "index.html"

    @app.get("/{full_path:path}", include_in_schema=False)
    async def static_fallback(full_path: str):
        target = _resolve_static_file(static_root, full_path)
        if target is not None:
            return FileResponse(target)
        if index_file.is_file():
            return FileResponse(index_file)
        return JSONResponse({"error": "Not found"}, status_code=status.HTTP_404_NOT_FOUND)


__all__ = ["STATIC_DIR", "install_security_headers", "register_static_routes", "security_headers"]
