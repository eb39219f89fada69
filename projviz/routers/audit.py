"""Admin-only audit log browsing and retention cleanup."""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.core.deps import require_admin
from projviz.db.session import get_db
from projviz.models.enums import AuditAction
from projviz.schemas.audit import AuditCleanupOut, AuditLogOut
from projviz.services import audit as audit_service
from projviz.services.pagination import clamp_per_page

router = APIRouter(dependencies=[Depends(require_admin)])

AUDIT_PER_PAGE = 50


@router.get("")
def get_audit_logs(
    user_id: int | None = Query(default=None, ge=1),
    action: AuditAction | None = Query(default=None),
    resource_type: str | None = Query(default=None, max_length=32),
    date_from: dt.datetime | None = Query(default=None),
    date_to: dt.datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    result = audit_service.list_audit_logs(
        db,
        filters={
            "user_id": user_id,
            "action": action,
            "resource_type": resource_type,
            "date_from": date_from,
            "date_to": date_to,
        },
        page=page,
        per_page=clamp_per_page(per_page, AUDIT_PER_PAGE),
    )
    return result.envelope([AuditLogOut.model_validate(row) for row in result.rows])


@router.get("/{log_id}", response_model=AuditLogOut)
def get_audit_log(log_id: int, db: Session = Depends(get_db)) -> AuditLogOut:
    return AuditLogOut.model_validate(audit_service.get_audit_log(db, log_id))


@router.delete("/cleanup", response_model=AuditCleanupOut)
def cleanup_audit_logs(
    retention_days: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> AuditCleanupOut:
    days = retention_days or settings.AUDIT_RETENTION_DAYS
    cutoff = audit_service.utcnow() - dt.timedelta(days=days)
    deleted = audit_service.delete_older_than(db, cutoff)
    return AuditCleanupOut(deleted=deleted, cutoff=cutoff)
