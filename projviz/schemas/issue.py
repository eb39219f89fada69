"""Schemas for mirrored issues."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel

from projviz.models.enums import DelayStatus, StatusCategory


class IssueOut(BaseModel):
    id: int
    jira_issue_id: str
    jira_issue_key: str
    project_id: int
    project_key: str | None = None
    project_name: str | None = None
    summary: str
    status: str
    status_category: StatusCategory
    due_date: dt.date | None = None
    assignee_name: str | None = None
    assignee_account_id: str | None = None
    delay_status: DelayStatus
    priority: str | None = None
    issue_type: str | None = None
    last_updated_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row: Any) -> "IssueOut":
        """Build from an (Issue, project_key, project_name) result row."""
        base = cls.model_validate(row[0])
        return base.model_copy(update={"project_key": row.project_key, "project_name": row.project_name})
