"""Dashboard roll-up endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user
from projviz.db.session import get_db
from projviz.schemas.dashboard import (
    DashboardSummaryOut,
    OrganizationDashboardOut,
    OrganizationRollupOut,
    ProjectDashboardOut,
)
from projviz.schemas.issue import IssueOut
from projviz.schemas.organization import OrganizationOut
from projviz.schemas.project import ProjectSummaryOut
from projviz.services import dashboard as dashboard_service

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/summary", response_model=DashboardSummaryOut)
def get_summary(db: Session = Depends(get_db)) -> DashboardSummaryOut:
    summary = dashboard_service.dashboard_summary(db)
    return DashboardSummaryOut(
        total_projects=summary.total_projects,
        red_projects=summary.red_projects,
        yellow_projects=summary.yellow_projects,
        green_projects=summary.green_projects,
        total_issues=summary.total_issues,
        red_issues=summary.red_issues,
        yellow_issues=summary.yellow_issues,
        green_issues=summary.green_issues,
        organizations=[OrganizationRollupOut.from_rollup(rollup) for rollup in summary.organizations],
    )


@router.get("/organizations/{org_id}", response_model=OrganizationDashboardOut)
def get_organization_dashboard(org_id: int, db: Session = Depends(get_db)) -> OrganizationDashboardOut:
    rollup, projects = dashboard_service.organization_summary(db, org_id)
    return OrganizationDashboardOut(
        organization=OrganizationOut.model_validate(rollup.organization),
        total_projects=rollup.total_projects,
        red_projects=rollup.red_projects,
        yellow_projects=rollup.yellow_projects,
        green_projects=rollup.green_projects,
        delay_status=rollup.delay_status,
        delay_rate=rollup.delay_rate,
        projects=[ProjectSummaryOut.from_summary(summary) for summary in projects],
    )


@router.get("/projects/{project_id}", response_model=ProjectDashboardOut)
def get_project_dashboard(project_id: int, db: Session = Depends(get_db)) -> ProjectDashboardOut:
    summary, delayed = dashboard_service.project_dashboard(db, project_id)
    return ProjectDashboardOut(
        project=ProjectSummaryOut.from_summary(summary),
        delayed_issues=[IssueOut.from_row(row) for row in delayed],
    )
