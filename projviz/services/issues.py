"""Issue store: batched upserts, the reclassification sweep, and filtered listing."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable

from sqlalchemy import ColumnElement, case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from projviz.core.exceptions import BadRequestError, NotFoundError
from projviz.db.base import upsert_insert
from projviz.models.enums import DelayStatus, StatusCategory
from projviz.models.issue import Issue
from projviz.models.project import Project
from projviz.services.delay import classify
from projviz.services.pagination import Page, paginate

logger = logging.getLogger(__name__)

MUTABLE_COLUMNS = (
    "jira_issue_key",
    "project_id",
    "summary",
    "status",
    "status_category",
    "due_date",
    "assignee_name",
    "assignee_account_id",
    "delay_status",
    "priority",
    "issue_type",
    "last_updated_at",
)

ISSUE_SORTS = ("due_date", "last_updated_at", "jira_issue_key", "delay_status")

_DELAY_RANK = case(
    (Issue.delay_status == DelayStatus.red, 0),
    (Issue.delay_status == DelayStatus.yellow, 1),
    else_=2,
)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def bulk_upsert_issues(db: Session, rows: list[dict[str, Any]]) -> int:
    """Upsert one batch by `jira_issue_id` in a single transaction.

    Every row must already carry its `delay_status`. On failure nothing from the
    batch is kept and the error propagates.
    """
    if not rows:
        return 0
    for row in rows:
        if row.get("delay_status") is None:
            raise ValueError(f"issue {row.get('jira_issue_key')} has no delay_status")

    # Later duplicates win; a single INSERT may not touch the same row twice.
    deduped = list({row["jira_issue_id"]: row for row in rows}.values())
    now = utcnow()
    stmt = upsert_insert(db, Issue).values([{**row, "created_at": now, "updated_at": now} for row in deduped])
    stmt = stmt.on_conflict_do_update(
        index_elements=[Issue.jira_issue_id],
        set_={**{column: getattr(stmt.excluded, column) for column in MUTABLE_COLUMNS}, "updated_at": now},
    )
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return len(deduped)


def refresh_delay_statuses(db: Session, current: dt.date) -> int:
    """Re-run the classifier over stored open issues whose class moved with the calendar."""
    rows = db.execute(
        select(Issue.id, Issue.status_category, Issue.due_date, Issue.delay_status).where(
            Issue.status_category != StatusCategory.done
        )
    ).all()
    changes = []
    for row in rows:
        expected = classify(row.status_category, row.due_date, current)
        if expected != row.delay_status:
            changes.append({"id": row.id, "delay_status": expected})
    if changes:
        db.execute(update(Issue), changes)
    db.commit()
    if changes:
        logger.info("Reclassified %s stored issue(s) for %s", len(changes), current.isoformat())
    return len(changes)


LIKE_ESCAPE = "\\"


def _contains_pattern(value: str) -> str:
    """`%value%` with the LIKE wildcards in `value` matched literally."""
    escaped = value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
    for wildcard in ("%", "_"):
        escaped = escaped.replace(wildcard, LIKE_ESCAPE + wildcard)
    return f"%{escaped}%"


IssueFilter = Callable[[Any], ColumnElement | None]

ISSUE_FILTERS: dict[str, IssueFilter] = {
    "project_id": lambda value: Issue.project_id == value,
    "delay_status": lambda value: Issue.delay_status == DelayStatus(value),
    "status_category": lambda value: Issue.status_category == StatusCategory(value),
    "assignee_name": lambda value: (
        Issue.assignee_name.ilike(_contains_pattern(value), escape=LIKE_ESCAPE) if value else None
    ),
    "no_due_date": lambda value: Issue.due_date.is_(None) if value else None,
    "due_date_from": lambda value: Issue.due_date >= value,
    "due_date_to": lambda value: Issue.due_date <= value,
}


def _issue_select():
    return select(
        Issue,
        Project.key.label("project_key"),
        Project.name.label("project_name"),
    ).join(Project, Project.id == Issue.project_id)


def _order_by(sort: str | None, order: str):
    descending = order == "desc"
    if sort is None:
        return (Issue.due_date.asc().nulls_last(), Issue.last_updated_at.desc().nulls_last(), Issue.id.asc())
    if sort == "delay_status":
        primary = _DELAY_RANK.desc() if descending else _DELAY_RANK.asc()
    else:
        column = getattr(Issue, sort)
        primary = (column.desc() if descending else column.asc()).nulls_last()
    return (primary, Issue.id.asc())


def list_issues(
    db: Session,
    *,
    filters: dict[str, Any],
    sort: str | None = None,
    order: str = "asc",
    page: int = 1,
    per_page: int = 25,
) -> Page:
    if sort is not None and sort not in ISSUE_SORTS:
        raise BadRequestError(f"invalid sort: {sort}")
    if order not in ("asc", "desc"):
        raise BadRequestError(f"invalid order: {order}")
    stmt = _issue_select()
    for option, value in filters.items():
        if value is None or option not in ISSUE_FILTERS:
            continue
        clause = ISSUE_FILTERS[option](value)
        if clause is not None:
            stmt = stmt.where(clause)
    return paginate(db, stmt.order_by(*_order_by(sort, order)), page=page, per_page=per_page)


def get_issue(db: Session, issue_id: int):
    row = db.execute(_issue_select().where(Issue.id == issue_id)).first()
    if row is None:
        raise NotFoundError("issue not found", details={"issue_id": issue_id})
    return row


def delayed_issues(db: Session, project_id: int, *, limit: int = 100) -> list[Any]:
    stmt = (
        _issue_select()
        .where(Issue.project_id == project_id, Issue.delay_status.in_([DelayStatus.red, DelayStatus.yellow]))
        .order_by(_DELAY_RANK.asc(), Issue.due_date.asc().nulls_last(), Issue.id.asc())
        .limit(limit)
    )
    return list(db.execute(stmt).all())
