"""Aggregation read model: project, organization, and global roll-ups."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from projviz.models.enums import DelayStatus
from projviz.models.issue import Issue
from projviz.models.organization import Organization
from projviz.services.delay import derive
from projviz.services.issues import delayed_issues
from projviz.services.organizations import get_organization, list_organizations
from projviz.services.projects import ProjectSummary, get_project_summary, list_project_summaries


@dataclass
class OrganizationRollup:
    organization: Organization
    total_projects: int = 0
    red_projects: int = 0
    yellow_projects: int = 0
    green_projects: int = 0

    @property
    def delay_status(self) -> DelayStatus:
        return derive(
            [DelayStatus.red] * self.red_projects + [DelayStatus.yellow] * self.yellow_projects
        )

    @property
    def delay_rate(self) -> float:
        if self.total_projects <= 0:
            return 0.0
        return self.red_projects / self.total_projects

    def add(self, summary: ProjectSummary) -> None:
        self.total_projects += 1
        status = summary.delay_status
        if status == DelayStatus.red:
            self.red_projects += 1
        elif status == DelayStatus.yellow:
            self.yellow_projects += 1
        else:
            self.green_projects += 1


@dataclass
class DashboardSummary:
    total_projects: int = 0
    red_projects: int = 0
    yellow_projects: int = 0
    green_projects: int = 0
    total_issues: int = 0
    red_issues: int = 0
    yellow_issues: int = 0
    green_issues: int = 0
    organizations: list[OrganizationRollup] = field(default_factory=list)


def _rollup(org: Organization, summaries: list[ProjectSummary]) -> OrganizationRollup:
    rollup = OrganizationRollup(organization=org)
    for summary in summaries:
        rollup.add(summary)
    return rollup


def dashboard_summary(db: Session) -> DashboardSummary:
    summaries = list_project_summaries(db)
    result = DashboardSummary()

    by_org: dict[int, list[ProjectSummary]] = {}
    for summary in summaries:
        result.total_projects += 1
        status = summary.delay_status
        if status == DelayStatus.red:
            result.red_projects += 1
        elif status == DelayStatus.yellow:
            result.yellow_projects += 1
        else:
            result.green_projects += 1
        if summary.project.organization_id is not None:
            by_org.setdefault(summary.project.organization_id, []).append(summary)

    issue_counts = dict(db.execute(select(Issue.delay_status, func.count(Issue.id)).group_by(Issue.delay_status)).all())
    result.red_issues = int(issue_counts.get(DelayStatus.red, 0))
    result.yellow_issues = int(issue_counts.get(DelayStatus.yellow, 0))
    result.green_issues = int(issue_counts.get(DelayStatus.green, 0))
    result.total_issues = result.red_issues + result.yellow_issues + result.green_issues

    result.organizations = [_rollup(org, by_org.get(org.id, [])) for org in list_organizations(db)]
    return result


def organization_summary(db: Session, org_id: int) -> tuple[OrganizationRollup, list[ProjectSummary]]:
    org = get_organization(db, org_id)
    summaries = list_project_summaries(db, organization_id=org_id)
    return _rollup(org, summaries), summaries


def project_dashboard(db: Session, project_id: int) -> tuple[ProjectSummary, list[Any]]:
    summary = get_project_summary(db, project_id)
    return summary, delayed_issues(db, project_id)
