"""Delay classification for issues and the roll-up rule for projects and organizations.

`classify` is evaluated at write time only; read paths serve the stored column.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from zoneinfo import ZoneInfo

from projviz.core.config import settings
from projviz.models.enums import DelayStatus, StatusCategory


def today(tz_name: str | None = None) -> dt.date:
    """Current calendar date in the configured server timezone."""
    return dt.datetime.now(ZoneInfo(tz_name or settings.TIMEZONE)).date()


def classify(
    status_category: StatusCategory | str | None,
    due_date: dt.date | None,
    current: dt.date,
    *,
    warning_days: int | None = None,
) -> DelayStatus:
    """First matching rule wins:

    1. Done -> GREEN
    2. no due date -> YELLOW
    3. due before today -> RED
    4. due within `warning_days` (inclusive) -> YELLOW
    5. otherwise GREEN
    """
    window = settings.DELAY_WARNING_DAYS if warning_days is None else warning_days
    if StatusCategory(status_category or StatusCategory.to_do) == StatusCategory.done:
        return DelayStatus.green
    if due_date is None:
        return DelayStatus.yellow
    if due_date < current:
        return DelayStatus.red
    if due_date <= current + dt.timedelta(days=window):
        return DelayStatus.yellow
    return DelayStatus.green


def derive(statuses: Iterable[DelayStatus | str]) -> DelayStatus:
    """RED if any RED, else YELLOW if any YELLOW, else GREEN (also for an empty set)."""
    seen = {DelayStatus(value) for value in statuses}
    if DelayStatus.red in seen:
        return DelayStatus.red
    if DelayStatus.yellow in seen:
        return DelayStatus.yellow
    return DelayStatus.green


def derive_from_counts(red: int, yellow: int) -> DelayStatus:
    if red > 0:
        return DelayStatus.red
    if yellow > 0:
        return DelayStatus.yellow
    return DelayStatus.green
