"""Schemas for audit log entries."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel

from projviz.models.enums import AuditAction


class AuditLogOut(BaseModel):
    id: int
    user_id: int | None = None
    username: str | None = None
    action: AuditAction
    resource_type: str
    resource_id: str | None = None
    method: str
    path: str
    ip_address: str | None = None
    user_agent: str | None = None
    request_body: str | None = None
    response_status: int | None = None
    response_body: str | None = None
    error_message: str | None = None
    duration_ms: int | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class AuditCleanupOut(BaseModel):
    deleted: int
    cutoff: dt.datetime
