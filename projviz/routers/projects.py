"""Project listing, detail, and organization assignment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user, require_permission
from projviz.db.session import get_db
from projviz.models.enums import DelayStatus, StatusCategory
from projviz.schemas.issue import IssueOut
from projviz.schemas.project import ProjectOrganizationUpdate, ProjectOut, ProjectSummaryOut
from projviz.services import issues as issue_service
from projviz.services import projects as project_service
from projviz.services.pagination import clamp_per_page

router = APIRouter()

PROJECTS_PER_PAGE = 20
ISSUES_PER_PAGE = 25


@router.get("", dependencies=[Depends(get_current_user)])
def get_projects(
    organization_id: int | None = Query(default=None, ge=1),
    unassigned: bool = Query(default=False),
    delay_status: DelayStatus | None = Query(default=None),
    sort: str = Query(default="name"),
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    size = clamp_per_page(per_page, PROJECTS_PER_PAGE)
    result = project_service.list_projects(
        db,
        filters={"organization_id": organization_id, "unassigned": unassigned, "delay_status": delay_status},
        sort=sort,
        page=page,
        per_page=size,
    )
    return result.envelope([ProjectSummaryOut.from_summary(summary) for summary in result.rows])


@router.get("/{project_id}", response_model=ProjectSummaryOut, dependencies=[Depends(get_current_user)])
def get_project(project_id: int, db: Session = Depends(get_db)) -> ProjectSummaryOut:
    return ProjectSummaryOut.from_summary(project_service.get_project_summary(db, project_id))


@router.put(
    "/{project_id}/organization",
    response_model=ProjectOut,
    dependencies=[Depends(require_permission("assign_projects"))],
)
def put_project_organization(
    project_id: int,
    payload: ProjectOrganizationUpdate,
    db: Session = Depends(get_db),
) -> ProjectOut:
    project = project_service.assign_organization(db, project_id, payload.organization_id)
    return ProjectOut.model_validate(project)


@router.get("/{project_id}/issues", dependencies=[Depends(get_current_user)])
def get_project_issues(
    project_id: int,
    delay_status: DelayStatus | None = Query(default=None),
    status_category: StatusCategory | None = Query(default=None),
    sort: str | None = Query(default=None),
    order: str = Query(default="asc"),
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    project_service.get_project(db, project_id)
    result = issue_service.list_issues(
        db,
        filters={"project_id": project_id, "delay_status": delay_status, "status_category": status_category},
        sort=sort,
        order=order,
        page=page,
        per_page=clamp_per_page(per_page, ISSUES_PER_PAGE),
    )
    return result.envelope([IssueOut.from_row(row) for row in result.rows])
