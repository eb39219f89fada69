"""Project store: upserts keyed by Jira id, filtered listing with issue roll-ups."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import ColumnElement, case, func, select
from sqlalchemy.orm import Session

from projviz.core.exceptions import BadRequestError, NotFoundError
from projviz.db.base import upsert_insert
from projviz.models.enums import DelayStatus, StatusCategory
from projviz.models.issue import Issue
from projviz.models.organization import Organization
from projviz.models.project import Project
from projviz.services.delay import derive_from_counts
from projviz.services.pagination import Page, paginate

logger = logging.getLogger(__name__)

PROJECT_SORTS = ("name", "name_desc", "delay_count")


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class ProjectCounts:
    red_count: int = 0
    yellow_count: int = 0
    green_count: int = 0
    open_count: int = 0
    total_count: int = 0

    @property
    def delay_status(self) -> DelayStatus:
        return derive_from_counts(self.red_count, self.yellow_count)


@dataclass(frozen=True)
class ProjectSummary:
    project: Project
    counts: ProjectCounts

    @property
    def delay_status(self) -> DelayStatus:
        return self.counts.delay_status


def issue_counts_subquery():
    """Per-project issue tallies by stored delay class."""
    return (
        select(
            Issue.project_id.label("project_id"),
            func.sum(case((Issue.delay_status == DelayStatus.red, 1), else_=0)).label("red_count"),
            func.sum(case((Issue.delay_status == DelayStatus.yellow, 1), else_=0)).label("yellow_count"),
            func.sum(case((Issue.delay_status == DelayStatus.green, 1), else_=0)).label("green_count"),
            func.sum(case((Issue.status_category != StatusCategory.done, 1), else_=0)).label("open_count"),
            func.count(Issue.id).label("total_count"),
        )
        .group_by(Issue.project_id)
        .subquery("issue_counts")
    )


def _summary_select():
    counts = issue_counts_subquery()
    columns = {
        name: func.coalesce(getattr(counts.c, name), 0).label(name)
        for name in ("red_count", "yellow_count", "green_count", "open_count", "total_count")
    }
    stmt = select(Project, *columns.values()).outerjoin(counts, counts.c.project_id == Project.id)
    return stmt, columns


def _to_summary(row: Any) -> ProjectSummary:
    return ProjectSummary(
        project=row[0],
        counts=ProjectCounts(
            red_count=int(row.red_count),
            yellow_count=int(row.yellow_count),
            green_count=int(row.green_count),
            open_count=int(row.open_count),
            total_count=int(row.total_count),
        ),
    )


def _delay_clause(value: DelayStatus, red: ColumnElement, yellow: ColumnElement) -> ColumnElement:
    if value == DelayStatus.red:
        return red > 0
    if value == DelayStatus.yellow:
        return (yellow > 0) & (red == 0)
    return (red == 0) & (yellow == 0)


# option name -> clause builder; a builder returning None means "no constraint"
ProjectFilter = Callable[[Any, dict[str, ColumnElement]], ColumnElement | None]

PROJECT_FILTERS: dict[str, ProjectFilter] = {
    "organization_id": lambda value, _cols: Project.organization_id == value,
    "unassigned": lambda value, _cols: Project.organization_id.is_(None) if value else None,
    "delay_status": lambda value, cols: _delay_clause(DelayStatus(value), cols["red_count"], cols["yellow_count"]),
}


def list_projects(
    db: Session,
    *,
    filters: dict[str, Any],
    sort: str = "name",
    page: int = 1,
    per_page: int = 20,
) -> Page:
    if sort not in PROJECT_SORTS:
        raise BadRequestError(f"invalid sort: {sort}")
    stmt, cols = _summary_select()
    for option, value in filters.items():
        if value is None or option not in PROJECT_FILTERS:
            continue
        clause = PROJECT_FILTERS[option](value, cols)
        if clause is not None:
            stmt = stmt.where(clause)

    if sort == "name_desc":
        stmt = stmt.order_by(Project.name.desc(), Project.id.asc())
    elif sort == "delay_count":
        stmt = stmt.order_by(cols["red_count"].desc(), cols["yellow_count"].desc(), Project.name.asc(), Project.id.asc())
    else:
        stmt = stmt.order_by(Project.name.asc(), Project.id.asc())

    result = paginate(db, stmt, page=page, per_page=per_page)
    return Page(rows=[_to_summary(row) for row in result.rows], page=page, per_page=per_page, total=result.total)


def list_project_summaries(db: Session, *, organization_id: int | None = None) -> list[ProjectSummary]:
    stmt, cols = _summary_select()
    if organization_id is not None:
        stmt = stmt.where(Project.organization_id == organization_id)
    stmt = stmt.order_by(cols["red_count"].desc(), cols["yellow_count"].desc(), Project.name.asc(), Project.id.asc())
    return [_to_summary(row) for row in db.execute(stmt).all()]


def get_project_summary(db: Session, project_id: int) -> ProjectSummary:
    stmt, _cols = _summary_select()
    row = db.execute(stmt.where(Project.id == project_id)).first()
    if row is None:
        raise NotFoundError("project not found", details={"project_id": project_id})
    return _to_summary(row)


def get_project(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise NotFoundError("project not found", details={"project_id": project_id})
    return project


def assign_organization(db: Session, project_id: int, organization_id: int | None) -> Project:
    project = get_project(db, project_id)
    if organization_id is not None and db.get(Organization, organization_id) is None:
        raise NotFoundError("organization not found", details={"organization_id": organization_id})
    project.organization_id = organization_id
    db.commit()
    db.refresh(project)
    logger.info("Project %s assigned to organization %s", project.key, organization_id)
    return project


def upsert_project(db: Session, values: dict[str, Any]) -> None:
    """Insert or update one project by `jira_project_id`. The caller commits."""
    now = utcnow()
    stmt = upsert_insert(db, Project).values(**values, created_at=now, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Project.jira_project_id],
        set_={
            "key": stmt.excluded.key,
            "name": stmt.excluded.name,
            "lead_account_id": stmt.excluded.lead_account_id,
            "lead_email": stmt.excluded.lead_email,
            "updated_at": now,
        },
    )
    db.execute(stmt)


def project_id_map(db: Session) -> dict[str, int]:
    return {jira_id: local_id for jira_id, local_id in db.execute(select(Project.jira_project_id, Project.id)).all()}
