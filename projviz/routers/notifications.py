"""Notification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user
from projviz.core.exceptions import NotFoundError
from projviz.db.session import get_db
from projviz.models.user import User
from projviz.schemas.notification import NotificationListOut, NotificationOut
from projviz.services.notifications_service import (
    count_unread_notifications,
    list_notifications,
    mark_all_notifications_as_read,
    mark_notification_as_read,
)

router = APIRouter()


@router.get("", response_model=NotificationListOut)
def get_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationListOut:
    notifications = list_notifications(db, user_id=current_user.id)
    return NotificationListOut(
        data=[NotificationOut.model_validate(n) for n in notifications],
        unread_count=count_unread_notifications(db, user_id=current_user.id),
    )


@router.put("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, int]:
    return {"updated": mark_all_notifications_as_read(db, user_id=current_user.id)}


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationOut:
    notification = mark_notification_as_read(db, user_id=current_user.id, notification_id=notification_id)
    if not notification:
        raise NotFoundError("notification not found", details={"notification_id": notification_id})
    return NotificationOut.model_validate(notification)
