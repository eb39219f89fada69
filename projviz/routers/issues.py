"""Issue listing endpoints."""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user
from projviz.db.session import get_db
from projviz.models.enums import DelayStatus, StatusCategory
from projviz.schemas.issue import IssueOut
from projviz.services import issues as issue_service
from projviz.services.pagination import clamp_per_page

router = APIRouter(dependencies=[Depends(get_current_user)])

ISSUES_PER_PAGE = 25


@router.get("")
def get_issues(
    project_id: int | None = Query(default=None, ge=1),
    delay_status: DelayStatus | None = Query(default=None),
    status_category: StatusCategory | None = Query(default=None),
    assignee_name: str | None = Query(default=None, max_length=255),
    no_due_date: bool = Query(default=False),
    due_date_from: dt.date | None = Query(default=None),
    due_date_to: dt.date | None = Query(default=None),
    sort: str | None = Query(default=None),
    order: str = Query(default="asc"),
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    result = issue_service.list_issues(
        db,
        filters={
            "project_id": project_id,
            "delay_status": delay_status,
            "status_category": status_category,
            "assignee_name": (assignee_name or "").strip() or None,
            "no_due_date": no_due_date,
            "due_date_from": due_date_from,
            "due_date_to": due_date_to,
        },
        sort=sort,
        order=order,
        page=page,
        per_page=clamp_per_page(per_page, ISSUES_PER_PAGE),
    )
    return result.envelope([IssueOut.from_row(row) for row in result.rows])


@router.get("/{issue_id}", response_model=IssueOut)
def get_issue(issue_id: int, db: Session = Depends(get_db)) -> IssueOut:
    return IssueOut.from_row(issue_service.get_issue(db, issue_id))
