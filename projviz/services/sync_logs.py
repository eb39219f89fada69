"""Sync log persistence: the singleton lease, completion, and stale-lease reconciliation."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projviz.models.enums import SyncStatus, SyncType
from projviz.models.sync_log import SyncLog

logger = logging.getLogger(__name__)

RECENT_LIMIT = 20
INTERRUPTED_MESSAGE = "interrupted"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def acquire_lease(db: Session, sync_type: SyncType) -> int | None:
    """Insert a RUNNING row unless one already exists; returns its id or None.

    The check and the insert are a single INSERT ... SELECT ... WHERE NOT EXISTS
    statement. The partial unique index on RUNNING rows catches the race two such
    statements can still run into under read-committed isolation.
    """
    table = SyncLog.__table__
    running = select(SyncLog.id).where(SyncLog.status == SyncStatus.running)
    source = select(
        literal(SyncType(sync_type), type_=table.c.sync_type.type),
        literal(SyncStatus.running, type_=table.c.status.type),
        literal(utcnow(), type_=table.c.executed_at.type),
        literal(0),
        literal(0),
        literal(0),
    ).where(~running.exists())
    stmt = insert(SyncLog).from_select(
        ["sync_type", "status", "executed_at", "projects_synced", "issues_synced", "error_count"],
        source,
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Sync lease rejected: another run holds it")
        return None
    if not result.rowcount:
        logger.info("Sync lease rejected: another run holds it")
        return None

    log_id = db.scalar(select(SyncLog.id).where(SyncLog.status == SyncStatus.running))
    logger.info("Sync lease acquired: log_id=%s type=%s", log_id, SyncType(sync_type).value)
    return log_id


def complete_sync(
    db: Session,
    log_id: int,
    *,
    ok: bool,
    projects_synced: int = 0,
    issues_synced: int = 0,
    error_count: int = 0,
    error_message: str | None = None,
    duration_seconds: float | None = None,
) -> None:
    """Finish a run and release the lease. Always attempted, even after the run failed."""
    db.rollback()
    db.execute(
        update(SyncLog)
        .where(SyncLog.id == log_id)
        .values(
            status=SyncStatus.success if ok else SyncStatus.failure,
            completed_at=utcnow(),
            projects_synced=projects_synced,
            issues_synced=issues_synced,
            error_count=error_count,
            error_message=error_message,
            duration_seconds=duration_seconds,
        )
    )
    db.commit()


def reconcile_stale(db: Session) -> int:
    """Fail every RUNNING row left behind by a process that no longer exists."""
    result = db.execute(
        update(SyncLog)
        .where(SyncLog.status == SyncStatus.running)
        .values(status=SyncStatus.failure, error_message=INTERRUPTED_MESSAGE, completed_at=utcnow())
    )
    db.commit()
    count = int(result.rowcount or 0)
    if count:
        logger.warning("Marked %s stale RUNNING sync log(s) as interrupted", count)
    return count


def get_sync_log(db: Session, log_id: int) -> SyncLog | None:
    return db.get(SyncLog, log_id)


def list_recent(db: Session, *, limit: int = RECENT_LIMIT) -> list[SyncLog]:
    return list(
        db.scalars(select(SyncLog).order_by(SyncLog.executed_at.desc(), SyncLog.id.desc()).limit(limit))
    )


def last_successful_start(db: Session) -> dt.datetime | None:
    """Start time of the most recent clean run, the DELTA high-water mark.

    Runs that finished with per-project errors do not advance the mark, so
    the projects they missed are fetched again from the earlier point.
    """
    value = db.scalar(
        select(SyncLog.executed_at)
        .where(SyncLog.status == SyncStatus.success, SyncLog.error_count == 0)
        .order_by(SyncLog.executed_at.desc())
        .limit(1)
    )
    if value is not None and value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value
