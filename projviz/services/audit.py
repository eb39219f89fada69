"""Audit log sink: entry derivation, asynchronous writes, listing, retention."""

from __future__ import annotations

import datetime as dt
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.core.exceptions import NotFoundError
from projviz.db import session as db_session
from projviz.models.audit_log import AuditLog
from projviz.models.enums import AuditAction
from projviz.services.pagination import Page, paginate

logger = logging.getLogger(__name__)

RESOURCE_TYPES = (
    "users",
    "organizations",
    "projects",
    "issues",
    "sync",
    "settings",
    "notifications",
    "audit",
    "auth",
    "dashboard",
)
_NUMERIC_SEGMENT_RE = re.compile(r"^\d+$")

_executor: ThreadPoolExecutor | None = None


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass
class AuditEntry:
    action: AuditAction
    resource_type: str
    method: str
    path: str
    user_id: int | None = None
    username: str | None = None
    resource_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_body: str | None = None
    response_status: int | None = None
    response_body: str | None = None
    error_message: str | None = None
    duration_ms: int | None = None


def derive_action(method: str, path: str) -> AuditAction:
    method = method.upper()
    lowered = path.lower()
    if method == "POST":
        if lowered.endswith("/login"):
            return AuditAction.login
        if lowered.endswith("/logout"):
            return AuditAction.logout
        if "/sync" in lowered:
            return AuditAction.sync
        return AuditAction.create
    if method in ("PUT", "PATCH"):
        return AuditAction.update
    if method == "DELETE":
        return AuditAction.delete
    return AuditAction.view


def _segments(path: str) -> list[str]:
    return [segment for segment in path.lower().split("/") if segment]


def derive_resource_type(path: str) -> str:
    for segment in _segments(path):
        if segment in RESOURCE_TYPES:
            return segment
        if segment == "sync-logs":
            return "sync"
    return "dashboard"


def derive_resource_id(path: str) -> str | None:
    for segment in _segments(path):
        if _NUMERIC_SEGMENT_RE.match(segment):
            return segment
    return None


def record_entry(entry: AuditEntry) -> None:
    db = db_session.SessionLocal()
    try:
        db.add(AuditLog(**asdict(entry)))
        db.commit()
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        logger.warning("Audit write failed for %s %s: %s", entry.method, entry.path, exc)
    finally:
        db.close()


def submit_entry(entry: AuditEntry) -> None:
    """Queue an entry for a background write; never raises into the request."""
    global _executor
    try:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=max(1, settings.AUDIT_WORKERS), thread_name_prefix="audit")
        _executor.submit(record_entry, entry)
    except RuntimeError as exc:
        logger.warning("Audit queue unavailable: %s", exc)


def shutdown_audit_writer() -> None:
    global _executor
    executor = _executor
    _executor = None
    if executor is not None:
        executor.shutdown(wait=True)


AUDIT_FILTERS = {
    "user_id": lambda value: AuditLog.user_id == value,
    "action": lambda value: AuditLog.action == AuditAction(value),
    "resource_type": lambda value: AuditLog.resource_type == value,
    "date_from": lambda value: AuditLog.created_at >= value,
    "date_to": lambda value: AuditLog.created_at <= value,
}


def list_audit_logs(db: Session, *, filters: dict[str, Any], page: int = 1, per_page: int = 50) -> Page:
    stmt = select(AuditLog)
    for option, value in filters.items():
        if value is not None and option in AUDIT_FILTERS:
            stmt = stmt.where(AUDIT_FILTERS[option](value))
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    return paginate(db, stmt, page=page, per_page=per_page, scalars=True)


def get_audit_log(db: Session, log_id: int) -> AuditLog:
    record = db.get(AuditLog, log_id)
    if not record:
        raise NotFoundError("audit log not found", details={"audit_log_id": log_id})
    return record


def delete_older_than(db: Session, cutoff: dt.datetime) -> int:
    result = db.execute(delete(AuditLog).where(AuditLog.created_at < cutoff))
    db.commit()
    deleted = int(result.rowcount or 0)
    logger.info("Audit cleanup removed %s entries older than %s", deleted, cutoff.isoformat())
    return deleted
