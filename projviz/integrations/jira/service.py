"""Business logic for one Jira -> DB sync run."""

from __future__ import annotations

import datetime as dt
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.core.exceptions import JiraAuthenticationError, JiraException, SyncCancelledError
from projviz.core.metrics import SyncMetrics, record_sync
from projviz.db import session as db_session
from projviz.integrations.jira.client import JiraClient
from projviz.integrations.jira.mapper import NormalizedProject, map_issue, map_project
from projviz.models.enums import SyncType
from projviz.services import delay
from projviz.services.issues import bulk_upsert_issues, refresh_delay_statuses
from projviz.services.jira_settings import JiraCredentials, resolve_credentials
from projviz.services.notifications_service import SyncOutcome
from projviz.services.projects import project_id_map, upsert_project
from projviz.services.sync_logs import complete_sync, last_successful_start

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "cancelled"
MAX_REPORTED_ERRORS = 5


@dataclass
class SyncJob:
    """Handle for one in-flight run: its lease id and cancellation signal."""

    log_id: int
    sync_type: SyncType
    cancel_event: threading.Event = field(default_factory=threading.Event)
    client: Any = None
    thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
        client = self.client
        if client is not None:
            try:
                client.close()
            except Exception as exc:  # noqa: BLE001
                logger.debug("Closing Jira client for sync %s failed: %s", self.log_id, exc)

    def check(self) -> None:
        if self.cancelled:
            raise SyncCancelledError()

    def sleep(self, seconds: float) -> None:
        if self.cancel_event.wait(seconds):
            raise SyncCancelledError()


@dataclass
class SyncProgress:
    projects_synced: int = 0
    issues_synced: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def summary(self) -> str | None:
        if not self.errors:
            return None
        shown = "; ".join(self.errors[:MAX_REPORTED_ERRORS])
        more = len(self.errors) - MAX_REPORTED_ERRORS
        suffix = f" (+{more} more)" if more > 0 else ""
        return f"{len(self.errors)} error(s): {shown}{suffix}"


ClientFactory = Callable[..., Any]


def build_client(credentials: JiraCredentials, *, sleep: Callable[[float], object] | None = None) -> JiraClient:
    return JiraClient(credentials, sleep=sleep)


def _issue_rows(
    issues: list[dict[str, Any]],
    project: NormalizedProject,
    id_map: dict[str, int],
    current: dt.date,
    progress: SyncProgress,
) -> list[dict[str, Any]]:
    rows = []
    for payload in issues:
        try:
            normalized = map_issue(payload)
        except ValueError as exc:
            progress.errors.append(f"{project.key}: unmappable issue ({exc})")
            continue
        local_id = id_map.get(normalized.jira_project_id or project.jira_project_id)
        if local_id is None:
            progress.errors.append(f"{normalized.jira_issue_key}: unknown project {normalized.jira_project_id}")
            continue
        row = normalized.as_row(local_id)
        row["delay_status"] = delay.classify(normalized.status_category, normalized.due_date, current)
        rows.append(row)
    return rows


def _fetch_project_issues(
    job: SyncJob, project: NormalizedProject, since: dt.datetime | None
) -> list[dict[str, Any]]:
    job.check()
    return job.client.list_issues(project.key, since)


def _fetch_issues(
    job: SyncJob, projects: list[NormalizedProject], since: dt.datetime | None
) -> dict[str, list[dict[str, Any]] | Exception]:
    """Fetch every project's issues on a bounded worker pool.

    A project's failure is returned in place of its issues. Authentication
    failures and cancellation abort the remaining fetches.
    """
    results: dict[str, list[dict[str, Any]] | Exception] = {}
    if not projects:
        return results
    workers = max(1, min(settings.SYNC_WORKER_COUNT, len(projects)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"sync-{job.log_id}") as pool:
        futures = {pool.submit(_fetch_project_issues, job, project, since): project for project in projects}
        for future in as_completed(futures):
            project = futures[future]
            try:
                results[project.key] = future.result()
            except (SyncCancelledError, JiraAuthenticationError):
                for pending in futures:
                    pending.cancel()
                raise
            except Exception as exc:  # noqa: BLE001
                results[project.key] = exc
    return results


def _store_project_issues(
    db: Session,
    job: SyncJob,
    project: NormalizedProject,
    issues: list[dict[str, Any]],
    *,
    id_map: dict[str, int],
    current: dt.date,
    progress: SyncProgress,
) -> int:
    rows = _issue_rows(issues, project, id_map, current, progress)
    batch_size = max(1, settings.SYNC_BATCH_SIZE)
    written = 0
    for start in range(0, len(rows), batch_size):
        job.check()
        written += bulk_upsert_issues(db, rows[start : start + batch_size])
    return written


def _run(db: Session, job: SyncJob, progress: SyncProgress) -> None:
    since = last_successful_start(db) if job.sync_type == SyncType.delta else None
    if job.sync_type == SyncType.delta and since is None:
        logger.info("Sync %s: no previous clean run, pulling everything", job.log_id)

    payloads = job.client.list_projects()
    job.check()
    logger.info("Sync %s: %s project(s) from Jira", job.log_id, len(payloads))

    projects: list[NormalizedProject] = []
    for payload in payloads:
        job.check()
        try:
            project = map_project(payload)
        except ValueError as exc:
            progress.errors.append(f"unmappable project ({exc})")
            continue
        upsert_project(db, project.as_row())
        projects.append(project)
    db.commit()
    progress.projects_synced = len(projects)

    fetched = _fetch_issues(job, projects, since)
    job.check()

    id_map = project_id_map(db)
    current = delay.today()
    failed = 0
    for project in projects:
        job.check()
        issues = fetched.get(project.key)
        try:
            if isinstance(issues, Exception):
                raise issues
            count = _store_project_issues(
                db, job, project, issues or [], id_map=id_map, current=current, progress=progress
            )
        except SyncCancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if job.cancelled:
                raise SyncCancelledError() from exc
            db.rollback()
            failed += 1
            progress.errors.append(f"{project.key}: {exc}")
            logger.warning("Sync %s: project %s failed: %s", job.log_id, project.key, exc)
            continue
        progress.issues_synced += count
        logger.debug("Sync %s: project %s upserted %s issue(s)", job.log_id, project.key, count)

    if projects and failed == len(projects):
        raise JiraException(f"issue sync failed for all {failed} project(s): {progress.summary()}")

    job.check()
    refresh_delay_statuses(db, current)


def _complete(job: SyncJob, outcome: SyncOutcome, duration: float) -> None:
    db = db_session.SessionLocal()
    try:
        complete_sync(
            db,
            job.log_id,
            ok=outcome.ok,
            projects_synced=outcome.projects_synced,
            issues_synced=outcome.issues_synced,
            error_count=outcome.error_count,
            error_message=outcome.error_message,
            duration_seconds=duration,
        )
    finally:
        db.close()


def run_sync(job: SyncJob, *, client_factory: ClientFactory = build_client) -> SyncOutcome:
    """Drive one run from a held lease to its completed sync-log row."""
    started = time.monotonic()
    progress = SyncProgress()
    ok = False
    message: str | None = None
    logger.info("Sync %s (%s) started", job.log_id, job.sync_type.value)

    db = db_session.SessionLocal()
    try:
        credentials = resolve_credentials(db)
        job.client = client_factory(credentials, sleep=job.sleep)
        try:
            job.check()
            _run(db, job, progress)
        finally:
            job.client.close()
        ok = True
        message = progress.summary()
    except SyncCancelledError:
        message = CANCELLED_MESSAGE
    except Exception as exc:  # noqa: BLE001
        if job.cancelled:
            message = CANCELLED_MESSAGE
        else:
            message = str(exc) or exc.__class__.__name__
            logger.exception("Sync %s failed", job.log_id)
    finally:
        db.rollback()
        db.close()

    duration = round(time.monotonic() - started, 3)
    outcome = SyncOutcome(
        log_id=job.log_id,
        ok=ok,
        sync_type=job.sync_type.value,
        projects_synced=progress.projects_synced,
        issues_synced=progress.issues_synced,
        error_count=progress.error_count,
        error_message=message,
    )
    _complete(job, outcome, duration)
    record_sync(
        SyncMetrics(
            sync_type=job.sync_type.value,
            success=ok,
            duration_seconds=duration,
            issues_synced=outcome.issues_synced,
            projects_synced=outcome.projects_synced,
        )
    )
    logger.info(
        "Sync %s finished: status=%s projects=%s issues=%s errors=%s duration=%.2fs",
        job.log_id,
        "SUCCESS" if ok else "FAILURE",
        outcome.projects_synced,
        outcome.issues_synced,
        outcome.error_count,
        duration,
    )
    return outcome
