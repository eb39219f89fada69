from __future__ import annotations

import random

import pytest

from projviz.core.exceptions import JiraPermanentError, JiraTransientError
from projviz.integrations.jira.retry import RetryPolicy, call_with_retry


def test_backoff_grows_and_caps() -> None:
    policy = RetryPolicy(max_attempts=5, base_seconds=1.0, factor=2.0, max_seconds=5.0)
    assert [policy.backoff(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


def test_delay_jitter_stays_within_half_to_full_backoff() -> None:
    policy = RetryPolicy(base_seconds=2.0, factor=2.0, max_seconds=30.0)
    rng = random.Random(7)
    for _ in range(50):
        assert 1.0 <= policy.delay(1, rng=rng) <= 2.0


def test_retry_after_takes_precedence_but_is_capped() -> None:
    policy = RetryPolicy(max_seconds=10.0)
    assert policy.delay(1, retry_after=3.0) == 3.0
    assert policy.delay(1, retry_after=120.0) == 10.0


def test_transient_errors_are_retried_until_success() -> None:
    calls = []
    sleeps = []

    def flaky() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise JiraTransientError("boom", status=503)
        return "ok"

    result = call_with_retry(flaky, policy=RetryPolicy(max_attempts=3, base_seconds=0.1), sleep=sleeps.append)

    assert result == "ok"
    assert len(calls) == 3
    assert len(sleeps) == 2


def test_gives_up_after_max_attempts() -> None:
    sleeps = []

    def always_down() -> None:
        raise JiraTransientError("down", status=502)

    with pytest.raises(JiraTransientError):
        call_with_retry(always_down, policy=RetryPolicy(max_attempts=2), sleep=sleeps.append)
    assert len(sleeps) == 1


def test_permanent_errors_are_not_retried() -> None:
    calls = []

    def rejected() -> None:
        calls.append(1)
        raise JiraPermanentError("bad request", status=400)

    with pytest.raises(JiraPermanentError):
        call_with_retry(rejected, policy=RetryPolicy(max_attempts=5), sleep=lambda _s: None)
    assert len(calls) == 1
