"""HTTP security headers and CORS middleware."""

from __future__ import annotations

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers

from projviz.core.config import Settings

CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "Accept", "Origin", "Cache-Control"]
CORS_ALLOW_METHODS = ["POST", "OPTIONS", "GET", "PUT", "DELETE"]


def install_security_headers_middleware(app: FastAPI, settings: Settings) -> None:
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if settings.is_release:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class NoContentPreflightMiddleware(CORSMiddleware):
    """Starlette's CORS handling with accepted preflights answered as 204."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


def install_cors_middleware(app: FastAPI, settings: Settings) -> None:
    """`*` or an explicit allow-list; credentials are only allowed with an explicit list."""
    origins = settings.cors_origins
    app.add_middleware(
        NoContentPreflightMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )
