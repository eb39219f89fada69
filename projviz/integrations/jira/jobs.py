"""In-process registry of sync runs started by this process."""

from __future__ import annotations

import logging
import threading

from projviz.core.exceptions import SyncAlreadyRunningError
from projviz.db import session as db_session
from projviz.integrations.jira import service
from projviz.integrations.jira.service import SyncJob
from projviz.models.enums import SyncType
from projviz.services import notifications_service
from projviz.services.jira_settings import resolve_credentials
from projviz.services.sync_logs import acquire_lease

logger = logging.getLogger(__name__)


class SyncJobManager:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[int, SyncJob] = {}

    def _execute(self, job: SyncJob) -> None:
        try:
            outcome = service.run_sync(job, client_factory=service.build_client)
            try:
                notifications_service.broadcast_sync_result(outcome)
            except Exception:  # noqa: BLE001
                logger.exception("Notification fan-out for sync %s failed", job.log_id)
        except Exception:  # noqa: BLE001
            logger.exception("Sync %s could not be completed", job.log_id)
        finally:
            # Stays registered through the fan-out so shutdown waits for it.
            with self._lock:
                self._jobs.pop(job.log_id, None)

    def start(self, sync_type: SyncType, *, background: bool = True) -> SyncJob:
        """Take the lease and run. Raises SyncAlreadyRunningError when it is held."""
        db = db_session.SessionLocal()
        try:
            resolve_credentials(db)
            log_id = acquire_lease(db, sync_type)
        finally:
            db.close()
        if log_id is None:
            raise SyncAlreadyRunningError()

        job = SyncJob(log_id=log_id, sync_type=SyncType(sync_type))
        with self._lock:
            self._jobs[log_id] = job
        if not background:
            self._execute(job)
            return job
        job.thread = threading.Thread(target=self._execute, args=(job,), name=f"sync-{log_id}", daemon=True)
        job.thread.start()
        return job

    def cancel(self, log_id: int) -> bool:
        with self._lock:
            job = self._jobs.get(log_id)
        if job is None:
            return False
        logger.info("Cancelling sync %s", log_id)
        job.cancel()
        return True

    def wait(self, log_id: int, timeout: float | None = None) -> None:
        with self._lock:
            job = self._jobs.get(log_id)
        if job is not None and job.thread is not None:
            job.thread.join(timeout)

    def shutdown(self, timeout: float = 30.0) -> None:
        with self._lock:
            jobs = list(self._jobs.values())
        for job in jobs:
            job.cancel()
        for job in jobs:
            if job.thread is not None:
                job.thread.join(timeout)


manager = SyncJobManager()
