from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from projviz.core.audit import install_audit_middleware
from projviz.core.config import settings
from projviz.core.exceptions import ProjVizException
from projviz.core.logging import setup_logging
from projviz.core.security_headers import install_cors_middleware, install_security_headers_middleware
from projviz.db import session as db_session
from projviz.integrations.jira.jobs import manager
from projviz.integrations.jira.scheduler import start_sync_scheduler, stop_sync_scheduler
from projviz.routers import (
    audit,
    auth,
    dashboard,
    health,
    issues,
    notifications,
    organizations,
    projects,
    settings as settings_router,
    sync_logs,
    users,
)
from projviz.services.audit import shutdown_audit_writer
from projviz.services.sync_logs import reconcile_stale

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _reconcile_on_startup() -> None:
    db = db_session.SessionLocal()
    try:
        reconcile_stale(db)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not reconcile interrupted sync runs: %s", exc)
    finally:
        db.close()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg") or "invalid value")
    return f"{location}: {message}" if location else message


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    settings.validate_runtime_security()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # Runs left RUNNING by a previous process must not block the lease.
        _reconcile_on_startup()
        await start_sync_scheduler()
        try:
            yield
        finally:
            await stop_sync_scheduler()
            manager.shutdown(timeout=settings.HTTP_GRACEFUL_SHUTDOWN_SECONDS)
            shutdown_audit_writer()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    # Last installed runs first: CORS, then security headers, then audit.
    install_audit_middleware(app, settings)
    install_security_headers_middleware(app, settings)
    install_cors_middleware(app, settings)

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["users"])
    app.include_router(organizations.router, prefix=f"{API_PREFIX}/organizations", tags=["organizations"])
    app.include_router(projects.router, prefix=f"{API_PREFIX}/projects", tags=["projects"])
    app.include_router(issues.router, prefix=f"{API_PREFIX}/issues", tags=["issues"])
    app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["dashboard"])
    app.include_router(settings_router.router, prefix=f"{API_PREFIX}/settings", tags=["settings"])
    app.include_router(sync_logs.router, prefix=f"{API_PREFIX}/sync-logs", tags=["sync"])
    app.include_router(notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["notifications"])
    app.include_router(audit.router, prefix=f"{API_PREFIX}/audit/logs", tags=["audit"])

    @app.exception_handler(ProjVizException)
    async def handle_projviz_exception(request: Request, exc: ProjVizException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        logger.info("%s %s invalid request: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "request failed"
        headers = getattr(exc, "headers", None)
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s raised an unhandled error", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "internal server error"})

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "projviz.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        timeout_keep_alive=settings.HTTP_TIMEOUT_KEEP_ALIVE,
        timeout_graceful_shutdown=settings.HTTP_GRACEFUL_SHUTDOWN_SECONDS,
        log_config=None,
    )
