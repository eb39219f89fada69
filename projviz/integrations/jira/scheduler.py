"""Background loop that triggers periodic Jira syncs."""

from __future__ import annotations

import asyncio
import logging

from projviz.core.config import settings
from projviz.core.exceptions import BadRequestError, SyncAlreadyRunningError
from projviz.integrations.jira.jobs import manager
from projviz.models.enums import SyncType

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None


def _run_once() -> None:
    sync_type = SyncType(settings.SYNC_SCHEDULED_TYPE.upper())
    try:
        job = manager.start(sync_type, background=False)
        logger.info("Scheduled %s sync finished (log_id=%s)", sync_type.value, job.log_id)
    except SyncAlreadyRunningError:
        logger.info("Skipping scheduled sync: another run holds the lease")
    except BadRequestError as exc:
        logger.debug("Skipping scheduled sync: %s", exc.message)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduled sync failed: %s", exc)


async def _loop() -> None:
    startup_delay = max(0, settings.SYNC_STARTUP_DELAY_SECONDS)
    interval = max(60, settings.SYNC_INTERVAL_SECONDS)
    if startup_delay:
        await asyncio.sleep(startup_delay)
    while True:
        await asyncio.to_thread(_run_once)
        await asyncio.sleep(interval)


async def start_sync_scheduler() -> None:
    global _task
    if _task is not None:
        return
    if not settings.SYNC_SCHEDULER_ENABLED:
        return
    _task = asyncio.create_task(_loop(), name="jira-sync-scheduler")
    logger.info("Sync scheduler started (every %s seconds)", max(60, settings.SYNC_INTERVAL_SECONDS))


async def stop_sync_scheduler() -> None:
    global _task
    task = _task
    _task = None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
