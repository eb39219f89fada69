"""Pydantic schemas for notifications."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel

from projviz.models.enums import NotificationType


class NotificationOut(BaseModel):
    id: int
    user_id: int
    type: NotificationType
    title: str
    body: str
    is_read: bool
    related_sync_log_id: int | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class NotificationListOut(BaseModel):
    data: list[NotificationOut]
    unread_count: int
