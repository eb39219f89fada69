"""Schemas for dashboard roll-ups."""

from __future__ import annotations

from pydantic import BaseModel

from projviz.models.enums import DelayStatus
from projviz.schemas.issue import IssueOut
from projviz.schemas.organization import OrganizationOut
from projviz.schemas.project import ProjectSummaryOut
from projviz.services.dashboard import OrganizationRollup


class OrganizationRollupOut(BaseModel):
    id: int
    name: str
    parent_id: int | None = None
    level: int
    total_projects: int
    red_projects: int
    yellow_projects: int
    green_projects: int
    delay_status: DelayStatus
    delay_rate: float

    @classmethod
    def from_rollup(cls, rollup: OrganizationRollup) -> "OrganizationRollupOut":
        org = rollup.organization
        return cls(
            id=org.id,
            name=org.name,
            parent_id=org.parent_id,
            level=org.level,
            total_projects=rollup.total_projects,
            red_projects=rollup.red_projects,
            yellow_projects=rollup.yellow_projects,
            green_projects=rollup.green_projects,
            delay_status=rollup.delay_status,
            delay_rate=rollup.delay_rate,
        )


class DashboardSummaryOut(BaseModel):
    total_projects: int
    red_projects: int
    yellow_projects: int
    green_projects: int
    total_issues: int
    red_issues: int
    yellow_issues: int
    green_issues: int
    organizations: list[OrganizationRollupOut]


class OrganizationDashboardOut(BaseModel):
    organization: OrganizationOut
    total_projects: int
    red_projects: int
    yellow_projects: int
    green_projects: int
    delay_status: DelayStatus
    delay_rate: float
    projects: list[ProjectSummaryOut]


class ProjectDashboardOut(BaseModel):
    project: ProjectSummaryOut
    delayed_issues: list[IssueOut]
