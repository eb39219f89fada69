from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy.exc import IntegrityError

from projviz.models.enums import DelayStatus, StatusCategory, SyncStatus, SyncType
from projviz.models.issue import Issue
from projviz.models.sync_log import SyncLog
from projviz.services.issues import bulk_upsert_issues, list_issues, refresh_delay_statuses
from projviz.services.sync_logs import (
    INTERRUPTED_MESSAGE,
    acquire_lease,
    complete_sync,
    last_successful_start,
    list_recent,
    reconcile_stale,
)


def _row(project_id, n: int, **overrides) -> dict:
    row = {
        "jira_issue_id": f"10{n}",
        "jira_issue_key": f"DEMO-{n}",
        "project_id": project_id,
        "summary": f"Issue {n}",
        "status": "To Do",
        "status_category": StatusCategory.to_do,
        "due_date": dt.date(2025, 3, 20),
        "assignee_name": None,
        "assignee_account_id": None,
        "delay_status": DelayStatus.green,
        "priority": None,
        "issue_type": "Task",
        "last_updated_at": None,
    }
    row.update(overrides)
    return row


def test_lease_is_a_singleton(db) -> None:
    first = acquire_lease(db, SyncType.full)
    second = acquire_lease(db, SyncType.delta)

    assert first is not None
    assert second is None
    assert db.query(SyncLog).filter(SyncLog.status == SyncStatus.running).count() == 1


def test_unique_index_rejects_a_second_running_row(db) -> None:
    acquire_lease(db, SyncType.full)
    db.add(SyncLog(sync_type=SyncType.full, status=SyncStatus.running))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_complete_releases_the_lease(db) -> None:
    log_id = acquire_lease(db, SyncType.full)
    complete_sync(db, log_id, ok=True, projects_synced=2, issues_synced=9, duration_seconds=1.5)

    record = db.get(SyncLog, log_id)
    db.refresh(record)
    assert record.status == SyncStatus.success
    assert record.completed_at is not None
    assert record.issues_synced == 9
    assert acquire_lease(db, SyncType.delta) not in (None, log_id)


def test_reconcile_marks_running_rows_interrupted(db) -> None:
    db.add(SyncLog(sync_type=SyncType.full, status=SyncStatus.running))
    db.commit()

    assert reconcile_stale(db) == 1

    record = list_recent(db)[0]
    assert record.status == SyncStatus.failure
    assert record.error_message == INTERRUPTED_MESSAGE
    assert acquire_lease(db, SyncType.full) is not None


def test_last_successful_start_ignores_failures(db) -> None:
    ok_id = acquire_lease(db, SyncType.full)
    complete_sync(db, ok_id, ok=True)
    failed_id = acquire_lease(db, SyncType.delta)
    complete_sync(db, failed_id, ok=False, error_message="boom")

    expected = db.get(SyncLog, ok_id).executed_at
    assert last_successful_start(db).replace(tzinfo=None) == expected.replace(tzinfo=None)


def test_last_successful_start_ignores_runs_with_errors(db) -> None:
    clean_id = acquire_lease(db, SyncType.full)
    complete_sync(db, clean_id, ok=True)
    partial_id = acquire_lease(db, SyncType.delta)
    complete_sync(db, partial_id, ok=True, error_count=1, error_message="1 error(s): ALPHA: boom")

    expected = db.get(SyncLog, clean_id).executed_at
    assert last_successful_start(db).replace(tzinfo=None) == expected.replace(tzinfo=None)


def test_bulk_upsert_inserts_then_updates(db, seed_project) -> None:
    project = seed_project("DEMO")
    assert bulk_upsert_issues(db, [_row(project.id, 1), _row(project.id, 2)]) == 2
    assert bulk_upsert_issues(db, [_row(project.id, 1, summary="Renamed", delay_status=DelayStatus.red)]) == 1

    issues = {i.jira_issue_key: i for i in db.query(Issue).all()}
    assert len(issues) == 2
    assert issues["DEMO-1"].summary == "Renamed"
    assert issues["DEMO-1"].delay_status == DelayStatus.red


def test_bulk_upsert_deduplicates_within_a_batch(db, seed_project) -> None:
    project = seed_project("DEMO")
    bulk_upsert_issues(db, [_row(project.id, 1), _row(project.id, 1, summary="Later wins")])

    assert db.query(Issue).one().summary == "Later wins"


def test_failed_batch_keeps_nothing(db, seed_project) -> None:
    project = seed_project("DEMO")
    with pytest.raises(IntegrityError):
        bulk_upsert_issues(db, [_row(project.id, 1), _row(None, 2)])

    assert db.query(Issue).count() == 0


def test_rows_without_delay_status_are_refused(db, seed_project) -> None:
    project = seed_project("DEMO")
    with pytest.raises(ValueError):
        bulk_upsert_issues(db, [_row(project.id, 1, delay_status=None)])


def test_refresh_reclassifies_open_issues_as_days_pass(db, seed_project) -> None:
    project = seed_project("DEMO")
    bulk_upsert_issues(
        db,
        [
            _row(project.id, 1, due_date=dt.date(2025, 3, 20), delay_status=DelayStatus.green),
            _row(
                project.id,
                2,
                due_date=dt.date(2025, 3, 1),
                status_category=StatusCategory.done,
                delay_status=DelayStatus.green,
            ),
        ],
    )

    changed = refresh_delay_statuses(db, dt.date(2025, 3, 21))

    db.expire_all()
    issues = {i.jira_issue_key: i for i in db.query(Issue).all()}
    assert changed == 1
    assert issues["DEMO-1"].delay_status == DelayStatus.red
    assert issues["DEMO-2"].delay_status == DelayStatus.green


def test_assignee_filter_matches_wildcards_literally(db, seed_project, seed_issues) -> None:
    project = seed_project("DEMO")
    seed_issues(project, DelayStatus.green, DelayStatus.green, DelayStatus.green)
    for issue, name in zip(db.query(Issue).order_by(Issue.id).all(), ("ann_lee", "annXlee", "100% Bob")):
        issue.assignee_name = name
    db.commit()

    def names(value: str) -> list[str]:
        page = list_issues(db, filters={"assignee_name": value})
        return sorted(row[0].assignee_name for row in page.rows)

    assert names("n_l") == ["ann_lee"]
    assert names("_") == ["ann_lee"]
    assert names("%") == ["100% Bob"]
    assert names("ANN") == ["annXlee", "ann_lee"]
