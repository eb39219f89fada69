"""Mapping utilities from Jira payloads to normalized project/issue data.

Pure functions: no clock, no database. Delay classification happens later.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import asdict, dataclass
from typing import Any

from projviz.models.enums import StatusCategory

logger = logging.getLogger(__name__)

STATUS_CATEGORY_MAP = {
    "new": StatusCategory.to_do,
    "indeterminate": StatusCategory.in_progress,
    "done": StatusCategory.done,
}


def _text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _parse_datetime(value: str | None) -> dt.datetime | None:
    if not value:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    candidates = [
        normalized.replace("Z", "+00:00"),
        normalized,
    ]
    for candidate in candidates:
        try:
            parsed = dt.datetime.fromisoformat(candidate)
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=dt.timezone.utc)
            return parsed.astimezone(dt.timezone.utc)
        except ValueError:
            continue
    # Jira's own shape: 2025-03-10T09:15:00.000+0900
    formats = ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z")
    for fmt in formats:
        try:
            parsed = dt.datetime.strptime(normalized, fmt)
            return parsed.astimezone(dt.timezone.utc)
        except ValueError:
            continue
    logger.warning("Could not parse Jira datetime: %s", value)
    return None


def parse_due_date(value: str | None) -> dt.date | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        logger.warning("Could not parse Jira due date: %s", value)
        return None


def map_status_category(fields: dict[str, Any]) -> StatusCategory:
    status_obj = fields.get("status") or {}
    category_key = str((status_obj.get("statusCategory") or {}).get("key") or "").strip().lower()
    return STATUS_CATEGORY_MAP.get(category_key, StatusCategory.to_do)


@dataclass(frozen=True)
class NormalizedProject:
    jira_project_id: str
    key: str
    name: str
    lead_account_id: str | None
    lead_email: str | None

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedIssue:
    jira_issue_id: str
    jira_issue_key: str
    jira_project_id: str | None
    summary: str
    status: str
    status_category: StatusCategory
    due_date: dt.date | None
    assignee_name: str | None
    assignee_account_id: str | None
    priority: str | None
    issue_type: str | None
    last_updated_at: dt.datetime | None

    def as_row(self, project_id: int) -> dict[str, Any]:
        row = asdict(self)
        row.pop("jira_project_id")
        row["project_id"] = project_id
        return row


def map_project(project: dict[str, Any]) -> NormalizedProject:
    project_id = _text(project.get("id"))
    key = _text(project.get("key"))
    if not project_id or not key:
        raise ValueError("missing_project_id")
    lead = project.get("lead") or {}
    return NormalizedProject(
        jira_project_id=project_id,
        key=key,
        name=(_text(project.get("name")) or key)[:255],
        lead_account_id=_text(lead.get("accountId")),
        lead_email=_text(lead.get("emailAddress")),
    )


def map_issue(issue: dict[str, Any]) -> NormalizedIssue:
    fields = issue.get("fields") or {}
    issue_id = _text(issue.get("id"))
    issue_key = _text(issue.get("key"))
    if not issue_id or not issue_key:
        raise ValueError("missing_issue_key")
    assignee = fields.get("assignee") or {}
    return NormalizedIssue(
        jira_issue_id=issue_id,
        jira_issue_key=issue_key,
        jira_project_id=_text((fields.get("project") or {}).get("id")),
        summary=_text(fields.get("summary")) or "",
        status=(_text((fields.get("status") or {}).get("name")) or "")[:128],
        status_category=map_status_category(fields),
        due_date=parse_due_date(fields.get("duedate")),
        assignee_name=_text(assignee.get("displayName")),
        assignee_account_id=_text(assignee.get("accountId")),
        priority=_text((fields.get("priority") or {}).get("name")),
        issue_type=_text((fields.get("issuetype") or {}).get("name")),
        last_updated_at=_parse_datetime(_text(fields.get("updated"))),
    )
