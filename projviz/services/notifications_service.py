"""Service helpers for notifications: listing, read-state updates, and sync fan-out."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.db import session as db_session
from projviz.models.enums import NotificationType
from projviz.models.notification import Notification
from projviz.models.user import User

logger = logging.getLogger(__name__)

LIST_LIMIT = 50


@dataclass(frozen=True)
class SyncOutcome:
    log_id: int
    ok: bool
    sync_type: str
    projects_synced: int = 0
    issues_synced: int = 0
    error_count: int = 0
    error_message: str | None = None


def list_notifications(db: Session, *, user_id: int, limit: int = LIST_LIMIT) -> list[Notification]:
    return list(
        db.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.is_read.asc(), Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
    )


def count_unread_notifications(db: Session, *, user_id: int) -> int:
    return int(
        db.scalar(
            select(func.count()).select_from(Notification).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        )
        or 0
    )


def mark_notification_as_read(db: Session, *, user_id: int, notification_id: int) -> Notification | None:
    record = db.get(Notification, notification_id)
    if not record or record.user_id != user_id:
        return None
    if not record.is_read:
        record.is_read = True
        db.commit()
        db.refresh(record)
    return record


def mark_all_notifications_as_read(db: Session, *, user_id: int) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    db.commit()
    return int(result.rowcount or 0)


def render_sync_notification(outcome: SyncOutcome) -> tuple[NotificationType, str, str]:
    if outcome.ok:
        body = f"{outcome.sync_type} sync finished: {outcome.projects_synced} projects, {outcome.issues_synced} issues."
        if outcome.error_count:
            body += f" {outcome.error_count} project(s) failed."
        return NotificationType.sync_completed, "Jira sync completed", body
    return (
        NotificationType.sync_failed,
        "Jira sync failed",
        f"{outcome.sync_type} sync failed: {outcome.error_message or 'unknown error'}",
    )


def _insert_one(user_id: int, kind: NotificationType, title: str, body: str, log_id: int) -> None:
    db = db_session.SessionLocal()
    try:
        db.add(Notification(user_id=user_id, type=kind, title=title, body=body, related_sync_log_id=log_id))
        db.commit()
    finally:
        db.close()


def broadcast_sync_result(outcome: SyncOutcome, *, workers: int | None = None) -> int:
    """Create one notification per active user. Best effort: a failed insert is logged and skipped."""
    db = db_session.SessionLocal()
    try:
        user_ids = list(db.scalars(select(User.id).where(User.is_active.is_(True)).order_by(User.id)))
    finally:
        db.close()
    if not user_ids:
        return 0

    kind, title, body = render_sync_notification(outcome)
    created = 0
    max_workers = max(1, workers or settings.NOTIFICATION_FANOUT_WORKERS)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify") as pool:
        futures = {pool.submit(_insert_one, uid, kind, title, body, outcome.log_id): uid for uid in user_ids}
        for future in as_completed(futures):
            try:
                future.result()
                created += 1
            except Exception as exc:  # noqa: BLE001
                logger.warning("Notification for user %s (sync %s) failed: %s", futures[future], outcome.log_id, exc)
    logger.info("Sync %s notifications sent: %s/%s", outcome.log_id, created, len(user_ids))
    return created
