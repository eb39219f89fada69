"""One-shot sync entry point for cron-style deployments: `projviz-sync --type DELTA`."""

from __future__ import annotations

import argparse
import logging
import sys

from projviz.core.config import settings
from projviz.core.exceptions import ProjVizException
from projviz.core.logging import setup_logging
from projviz.db.session import SessionLocal
from projviz.integrations.jira.jobs import manager
from projviz.models.enums import SyncStatus, SyncType
from projviz.services.sync_logs import get_sync_log, reconcile_stale

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one Jira synchronization.")
    parser.add_argument("--type", dest="sync_type", choices=[t.value for t in SyncType], default=SyncType.full.value)
    parser.add_argument(
        "--reconcile",
        action="store_true",
        help="mark RUNNING sync logs as interrupted first (only when no server is running)",
    )
    args = parser.parse_args(argv)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    db = SessionLocal()
    try:
        if args.reconcile:
            reconcile_stale(db)
    finally:
        db.close()

    try:
        job = manager.start(SyncType(args.sync_type), background=False)
    except ProjVizException as exc:
        logger.error("Sync not started: %s", exc.message)
        return 2

    db = SessionLocal()
    try:
        record = get_sync_log(db, job.log_id)
        ok = record is not None and record.status == SyncStatus.success
    finally:
        db.close()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
