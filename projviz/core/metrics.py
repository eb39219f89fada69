"""Sync-run metrics emitted as CloudWatch Embedded Metric Format log lines."""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass
from typing import Any

from projviz.core.config import settings

logger = logging.getLogger(__name__)

# Raw EMF documents, one JSON object per line, kept out of the app log format.
emf_logger = logging.getLogger("projviz.metrics.emf")
emf_logger.setLevel(logging.INFO)
emf_logger.propagate = False

SYNC_METRICS = (
    ("SyncSuccess", "Count"),
    ("DurationSeconds", "Seconds"),
    ("IssuesSynced", "Count"),
    ("ProjectsSynced", "Count"),
)


@dataclass(frozen=True)
class SyncMetrics:
    sync_type: str
    success: bool
    duration_seconds: float
    issues_synced: int
    projects_synced: int


def build_sync_document(metrics: SyncMetrics, *, namespace: str, timestamp_ms: int | None = None) -> dict[str, Any]:
    return {
        "_aws": {
            "Timestamp": timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
            "CloudWatchMetrics": [
                {
                    "Namespace": namespace,
                    "Dimensions": [["SyncType"]],
                    "Metrics": [{"Name": name, "Unit": unit} for name, unit in SYNC_METRICS],
                }
            ],
        },
        "SyncType": metrics.sync_type,
        "SyncSuccess": 1 if metrics.success else 0,
        "DurationSeconds": metrics.duration_seconds,
        "IssuesSynced": metrics.issues_synced,
        "ProjectsSynced": metrics.projects_synced,
    }


def _emitter() -> logging.Logger:
    if not emf_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        emf_logger.addHandler(handler)
    return emf_logger


def record_sync(metrics: SyncMetrics) -> None:
    """Write one EMF line for a finished sync run; failures only log a warning."""
    if not settings.METRICS_ENABLED:
        return
    try:
        line = json.dumps(build_sync_document(metrics, namespace=settings.METRICS_NAMESPACE))
    except (TypeError, ValueError) as exc:
        logger.warning("Failed to encode sync metrics: %s", exc)
        return
    _emitter().info(line)
