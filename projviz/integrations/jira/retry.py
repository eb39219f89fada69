"""Retry policy for Jira calls: exponential backoff with jitter, transient errors only."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from projviz.core.config import settings
from projviz.core.exceptions import JiraTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_seconds: float = 1.0
    factor: float = 2.0
    max_seconds: float = 30.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, settings.RETRY_MAX_ATTEMPTS),
            base_seconds=settings.RETRY_BASE_SECONDS,
            factor=settings.RETRY_FACTOR,
            max_seconds=settings.RETRY_MAX_SECONDS,
        )

    def backoff(self, attempt: int) -> float:
        """Upper bound of the wait after failed attempt number `attempt` (1-based)."""
        return min(self.max_seconds, self.base_seconds * (self.factor ** (attempt - 1)))

    def delay(self, attempt: int, *, retry_after: float | None = None, rng: random.Random | None = None) -> float:
        if retry_after is not None and retry_after >= 0:
            return min(self.max_seconds, retry_after)
        ceiling = self.backoff(attempt)
        # Equal jitter: half fixed, half random.
        return ceiling / 2 + (rng or random).uniform(0, ceiling / 2)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, JiraTransientError)


def call_with_retry(
    func: Callable[[], T],
    *,
    policy: RetryPolicy,
    sleep: Callable[[float], object] = time.sleep,
    retryable: Callable[[BaseException], bool] = is_transient,
    description: str = "jira call",
) -> T:
    attempt = 1
    while True:
        try:
            return func()
        except Exception as exc:
            if not retryable(exc) or attempt >= policy.max_attempts:
                raise
            wait = policy.delay(attempt, retry_after=getattr(exc, "retry_after", None))
            logger.warning(
                "%s failed (attempt %s/%s): %s; retrying in %.2fs",
                description,
                attempt,
                policy.max_attempts,
                exc,
                wait,
            )
            sleep(wait)
            attempt += 1
