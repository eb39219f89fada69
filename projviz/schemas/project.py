"""Schemas for projects and their issue roll-ups."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from projviz.models.enums import DelayStatus
from projviz.services.projects import ProjectSummary


class ProjectOut(BaseModel):
    id: int
    jira_project_id: str
    key: str
    name: str
    lead_account_id: str | None = None
    lead_email: str | None = None
    organization_id: int | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class ProjectSummaryOut(ProjectOut):
    red_count: int = 0
    yellow_count: int = 0
    green_count: int = 0
    open_count: int = 0
    total_count: int = 0
    delay_status: DelayStatus

    @classmethod
    def from_summary(cls, summary: ProjectSummary) -> "ProjectSummaryOut":
        base = ProjectOut.model_validate(summary.project).model_dump()
        counts = summary.counts
        return cls(
            **base,
            red_count=counts.red_count,
            yellow_count=counts.yellow_count,
            green_count=counts.green_count,
            open_count=counts.open_count,
            total_count=counts.total_count,
            delay_status=summary.delay_status,
        )


class ProjectOrganizationUpdate(BaseModel):
    organization_id: int | None = Field(default=None, ge=1)
