from __future__ import annotations

from projviz.models.enums import DelayStatus
from projviz.services import dashboard as dashboard_service
from projviz.services import organizations as org_service
from projviz.services.projects import list_projects

RED, YELLOW, GREEN = DelayStatus.red, DelayStatus.yellow, DelayStatus.green


def test_organization_rollup(db, seed_project, seed_issues) -> None:
    org = org_service.create_organization(db, name="X")
    p1 = seed_project("P1", organization_id=org.id)
    p2 = seed_project("P2", organization_id=org.id)
    seed_issues(p1, RED, RED, YELLOW, GREEN, GREEN, GREEN)
    seed_issues(p2, GREEN, GREEN, GREEN, GREEN, GREEN)

    rollup, projects = dashboard_service.organization_summary(db, org.id)

    assert rollup.total_projects == 2
    assert rollup.red_projects == 1
    assert rollup.yellow_projects == 0
    assert rollup.green_projects == 1
    assert rollup.delay_status == DelayStatus.red
    assert rollup.delay_rate == 0.5
    assert [summary.project.key for summary in projects] == ["P1", "P2"]
    assert projects[0].counts.red_count == 2
    assert projects[0].counts.total_count == 6


def test_empty_organization_is_green(db) -> None:
    org = org_service.create_organization(db, name="Empty")

    rollup, projects = dashboard_service.organization_summary(db, org.id)

    assert projects == []
    assert rollup.delay_status == DelayStatus.green
    assert rollup.delay_rate == 0.0


def test_global_summary_counts(db, seed_project, seed_issues) -> None:
    org = org_service.create_organization(db, name="X")
    p1 = seed_project("P1", organization_id=org.id)
    p2 = seed_project("P2")
    p3 = seed_project("P3")
    seed_issues(p1, YELLOW, GREEN)
    seed_issues(p2, RED)

    summary = dashboard_service.dashboard_summary(db)

    assert (summary.total_projects, summary.red_projects, summary.yellow_projects, summary.green_projects) == (
        3,
        1,
        1,
        1,
    )
    assert (summary.total_issues, summary.red_issues, summary.yellow_issues) == (3, 1, 1)
    assert [r.organization.name for r in summary.organizations] == ["X"]
    assert summary.organizations[0].delay_status == DelayStatus.yellow
    assert p3.id is not None


def test_project_listing_filters_by_derived_status(db, seed_project, seed_issues) -> None:
    red = seed_project("RED", name="Alpha")
    yellow = seed_project("YEL", name="Bravo")
    seed_project("GRN", name="Charlie")
    seed_issues(red, RED, YELLOW)
    seed_issues(yellow, YELLOW, GREEN)

    def keys(status):
        page = list_projects(db, filters={"delay_status": status}, page=1, per_page=20)
        return [summary.project.key for summary in page.rows]

    assert keys(RED) == ["RED"]
    assert keys(YELLOW) == ["YEL"]
    assert keys(GREEN) == ["GRN"]


def test_project_dashboard_lists_only_delayed_issues(db, seed_project, seed_issues) -> None:
    project = seed_project("P1")
    seed_issues(project, GREEN, YELLOW, RED)

    summary, delayed = dashboard_service.project_dashboard(db, project.id)

    assert summary.delay_status == DelayStatus.red
    assert [row[0].delay_status for row in delayed] == [RED, YELLOW]
