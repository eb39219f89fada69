from __future__ import annotations

import threading

import pytest

from projviz.core.config import settings
from projviz.core.exceptions import BadRequestError, JiraAuthenticationError, SyncAlreadyRunningError
from projviz.integrations.jira import service
from projviz.integrations.jira.jobs import SyncJobManager
from projviz.integrations.jira.service import SyncJob, run_sync
from projviz.models.enums import DelayStatus, NotificationType, SyncStatus, SyncType, UserRole
from projviz.models.issue import Issue
from projviz.models.notification import Notification
from projviz.models.project import Project
from projviz.models.sync_log import SyncLog
from projviz.services.jira_settings import save_settings
from projviz.services.sync_logs import acquire_lease, last_successful_start


def _issue_payload(n: int, project_id: str, *, due: str | None = None, category: str = "indeterminate") -> dict:
    return {
        "id": f"2{n:04d}",
        "key": f"K-{n}",
        "fields": {
            "summary": f"Issue {n}",
            "status": {"name": "Doing", "statusCategory": {"key": category}},
            "duedate": due,
            "updated": "2025-03-01T10:00:00.000+0000",
            "project": {"id": project_id},
        },
    }


class FakeJira:
    def __init__(self, projects=None, issues=None, failing=()):
        self.projects = projects if projects is not None else [
            {"id": "1", "key": "ALPHA", "name": "Alpha"},
            {"id": "2", "key": "BETA", "name": "Beta"},
        ]
        self.issues = issues if issues is not None else {
            "ALPHA": [_issue_payload(1, "1", due="2000-01-01"), _issue_payload(2, "1", due="2999-01-01")],
            "BETA": [_issue_payload(3, "2")],
        }
        self.failing = set(failing)
        self.since_seen = []
        self.closed = False
        self.on_issues = None

    def list_projects(self):
        return list(self.projects)

    def list_issues(self, key, since=None):
        self.since_seen.append(since)
        if self.on_issues is not None:
            self.on_issues(key)
        if key in self.failing:
            raise RuntimeError(f"{key} exploded")
        return list(self.issues.get(key, []))

    def close(self):
        self.closed = True


@pytest.fixture()
def configured(db):
    save_settings(db, jira_url="https://example.atlassian.net", email="bot@example.com", api_token="secret-token")


def _start(db, sync_type=SyncType.full) -> SyncJob:
    return SyncJob(log_id=acquire_lease(db, sync_type), sync_type=sync_type)


def _log(db, log_id) -> SyncLog:
    db.expire_all()
    return db.get(SyncLog, log_id)


def test_full_sync_upserts_and_classifies(db, configured) -> None:
    fake = FakeJira()
    job = _start(db)

    outcome = run_sync(job, client_factory=lambda _c, sleep=None: fake)

    assert outcome.ok
    assert (outcome.projects_synced, outcome.issues_synced) == (2, 3)
    assert fake.closed
    record = _log(db, job.log_id)
    assert record.status == SyncStatus.success
    assert record.error_count == 0
    statuses = {i.jira_issue_key: i.delay_status for i in db.query(Issue).all()}
    assert statuses == {"K-1": DelayStatus.red, "K-2": DelayStatus.green, "K-3": DelayStatus.yellow}


def test_project_failure_is_recorded_and_others_continue(db, configured) -> None:
    fake = FakeJira(failing={"ALPHA"})
    job = _start(db)

    outcome = run_sync(job, client_factory=lambda _c, sleep=None: fake)

    record = _log(db, job.log_id)
    assert outcome.ok
    assert record.status == SyncStatus.success
    assert record.error_count == 1
    assert "ALPHA" in record.error_message
    assert [i.jira_issue_key for i in db.query(Issue).all()] == ["K-3"]


def test_every_project_failing_fails_the_run(db, configured) -> None:
    fake = FakeJira(failing={"ALPHA", "BETA"})
    job = _start(db, SyncType.delta)

    outcome = run_sync(job, client_factory=lambda _c, sleep=None: fake)

    record = _log(db, job.log_id)
    assert not outcome.ok
    assert record.status == SyncStatus.failure
    assert record.error_count == 2
    assert "ALPHA" in record.error_message and "BETA" in record.error_message
    assert db.query(Issue).count() == 0
    assert last_successful_start(db) is None


def test_delta_after_partial_failure_refetches_missed_projects(db, configured) -> None:
    run_sync(_start(db, SyncType.delta), client_factory=lambda _c, sleep=None: FakeJira(failing={"ALPHA"}))
    assert last_successful_start(db) is None

    fake = FakeJira()
    job = _start(db, SyncType.delta)
    outcome = run_sync(job, client_factory=lambda _c, sleep=None: fake)

    assert outcome.ok
    assert fake.since_seen == [None, None]
    assert sorted(i.jira_issue_key for i in db.query(Issue).all()) == ["K-1", "K-2", "K-3"]
    assert last_successful_start(db).replace(tzinfo=None) == _log(db, job.log_id).executed_at.replace(tzinfo=None)


def test_partial_failure_does_not_advance_the_delta_mark(db, configured) -> None:
    clean = _start(db)
    run_sync(clean, client_factory=lambda _c, sleep=None: FakeJira())
    mark = _log(db, clean.log_id).executed_at.replace(tzinfo=None)
    run_sync(_start(db, SyncType.delta), client_factory=lambda _c, sleep=None: FakeJira(failing={"BETA"}))

    fake = FakeJira()
    run_sync(_start(db, SyncType.delta), client_factory=lambda _c, sleep=None: fake)

    assert [since.replace(tzinfo=None) for since in fake.since_seen] == [mark, mark]


def test_issue_fetches_run_in_parallel(db, configured, monkeypatch) -> None:
    monkeypatch.setattr(settings, "SYNC_WORKER_COUNT", 2)
    barrier = threading.Barrier(2, timeout=5)
    fake = FakeJira()
    fake.on_issues = lambda _key: barrier.wait()

    outcome = run_sync(_start(db), client_factory=lambda _c, sleep=None: fake)

    assert outcome.ok
    assert outcome.issues_synced == 3
    assert outcome.error_count == 0


def test_single_worker_fetches_every_project(db, configured, monkeypatch) -> None:
    monkeypatch.setattr(settings, "SYNC_WORKER_COUNT", 1)
    seen = []
    fake = FakeJira()
    fake.on_issues = lambda key: seen.append((key, threading.current_thread().name))

    outcome = run_sync(_start(db), client_factory=lambda _c, sleep=None: fake)

    assert outcome.ok
    assert sorted(key for key, _ in seen) == ["ALPHA", "BETA"]
    assert len({name for _, name in seen}) == 1


def test_finished_run_emits_sync_metrics(db, configured, monkeypatch) -> None:
    emitted = []
    monkeypatch.setattr(service, "record_sync", emitted.append)

    run_sync(_start(db, SyncType.delta), client_factory=lambda _c, sleep=None: FakeJira())
    run_sync(_start(db), client_factory=lambda _c, sleep=None: FakeJira(failing={"ALPHA", "BETA"}))

    assert [(m.sync_type, m.success, m.projects_synced, m.issues_synced) for m in emitted] == [
        ("DELTA", True, 2, 3),
        ("FULL", False, 2, 0),
    ]
    assert all(m.duration_seconds >= 0 for m in emitted)


def test_authentication_failure_fails_the_run(db, configured) -> None:
    class Rejected(FakeJira):
        def list_projects(self):
            raise JiraAuthenticationError("jira rejected credentials (401)", status=401)

    job = _start(db)
    outcome = run_sync(job, client_factory=lambda _c, sleep=None: Rejected())

    record = _log(db, job.log_id)
    assert not outcome.ok
    assert record.status == SyncStatus.failure
    assert "401" in record.error_message
    assert record.completed_at is not None


def test_cancellation_completes_as_failure(db, configured) -> None:
    fake = FakeJira()
    job = _start(db)
    fake.on_issues = lambda _key: job.cancel()

    outcome = run_sync(job, client_factory=lambda _c, sleep=None: fake)

    record = _log(db, job.log_id)
    assert not outcome.ok
    assert record.status == SyncStatus.failure
    assert record.error_message == "cancelled"
    assert acquire_lease(db, SyncType.full) is not None


def test_delta_uses_last_successful_start(db, configured) -> None:
    first = _start(db)
    run_sync(first, client_factory=lambda _c, sleep=None: FakeJira())
    started = _log(db, first.log_id).executed_at

    fake = FakeJira()
    second = _start(db, SyncType.delta)
    run_sync(second, client_factory=lambda _c, sleep=None: fake)

    assert fake.since_seen
    assert all(since.replace(tzinfo=None) == started.replace(tzinfo=None) for since in fake.since_seen)


def test_delta_without_history_pulls_everything(db, configured) -> None:
    fake = FakeJira()
    run_sync(_start(db, SyncType.delta), client_factory=lambda _c, sleep=None: fake)

    assert fake.since_seen == [None, None]


def test_manager_broadcasts_to_active_users(db, configured, make_user, monkeypatch) -> None:
    make_user(UserRole.admin, username="admin")
    make_user(UserRole.viewer, username="viewer")
    make_user(UserRole.viewer, username="retired", is_active=False)
    monkeypatch.setattr(service, "build_client", lambda _c, sleep=None: FakeJira())

    job = SyncJobManager().start(SyncType.full, background=False)

    notifications = db.query(Notification).all()
    assert len(notifications) == 2
    assert {n.type for n in notifications} == {NotificationType.sync_completed}
    assert {n.related_sync_log_id for n in notifications} == {job.log_id}
    assert db.query(Project).count() == 2


def test_manager_refuses_a_second_run(db, configured) -> None:
    acquire_lease(db, SyncType.full)

    with pytest.raises(SyncAlreadyRunningError):
        SyncJobManager().start(SyncType.delta, background=False)


def test_manager_requires_credentials(db) -> None:
    with pytest.raises(BadRequestError):
        SyncJobManager().start(SyncType.full, background=False)
    assert db.query(SyncLog).count() == 0


def test_notifications_sent_on_failure(db, configured, make_user, monkeypatch) -> None:
    make_user(UserRole.manager, username="manager")

    class Broken(FakeJira):
        def list_projects(self):
            raise JiraAuthenticationError()

    monkeypatch.setattr(service, "build_client", lambda _c, sleep=None: Broken())

    SyncJobManager().start(SyncType.full, background=False)

    notification = db.query(Notification).one()
    assert notification.type == NotificationType.sync_failed
    assert "failed" in notification.body

