"""Request-audit middleware feeding the audit log sink."""

from __future__ import annotations

import json
import time

from fastapi import FastAPI, Request, Response

from projviz.core.config import Settings
from projviz.core.sanitize import redact_body, truncate_body
from projviz.services import audit

SKIPPED_PATHS = frozenset({"/health", "/ready"})


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",", 1)[0].strip() or None
    return request.client.host if request.client else None


def install_audit_middleware(app: FastAPI, settings: Settings) -> None:
    @app.middleware("http")
    async def audit_requests(request: Request, call_next):  # type: ignore[override]
        path = request.url.path or ""
        if not settings.AUDIT_ENABLED or path in SKIPPED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        started = time.perf_counter()
        method = request.method.upper()
        request_body = await request.body() if method != "GET" else b""

        response = await call_next(request)
        status = response.status_code

        response_text = None
        if method != "GET" or status >= 400:
            chunks = [chunk async for chunk in response.body_iterator]
            raw = b"".join(chunk if isinstance(chunk, bytes) else chunk.encode("utf-8") for chunk in chunks)
            response = Response(
                content=raw,
                status_code=status,
                headers=dict(response.headers),
                media_type=response.media_type,
                background=response.background,
            )
            response_text = raw.decode("utf-8", errors="replace") or None

        limit = settings.AUDIT_BODY_MAX_BYTES
        entry = audit.AuditEntry(
            action=audit.derive_action(method, path),
            resource_type=audit.derive_resource_type(path),
            resource_id=audit.derive_resource_id(path),
            method=method,
            path=path,
            user_id=getattr(request.state, "user_id", None),
            username=getattr(request.state, "username", None),
            ip_address=_client_ip(request),
            user_agent=(request.headers.get("User-Agent") or "")[:512] or None,
            request_body=truncate_body(redact_body(request_body), limit) if request_body else None,
            response_status=status,
            response_body=truncate_body(redact_body(response_text), limit) if response_text else None,
            error_message=_error_message(response_text) if status >= 400 else None,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        audit.submit_entry(entry)
        return response


def _error_message(body: str | None) -> str | None:
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except ValueError:
        return body[:500]
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), str):
        return parsed["error"][:500]
    return None
