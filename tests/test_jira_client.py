from __future__ import annotations

import datetime as dt
import json

import httpx
import pytest

from projviz.core.exceptions import JiraAuthenticationError, JiraPermanentError, JiraTransientError
from projviz.integrations.jira.client import (
    ISSUE_SEARCH_PATH,
    PROJECT_SEARCH_PATH,
    JiraClient,
    build_issue_jql,
    format_jql_datetime,
)
from projviz.integrations.jira.retry import RetryPolicy
from projviz.services.jira_settings import JiraCredentials

CREDENTIALS = JiraCredentials(base_url="https://example.atlassian.net", email="bot@example.com", api_token="t0k3n")


def _client(handler, *, sleeps=None, attempts=3) -> JiraClient:
    client = JiraClient(
        CREDENTIALS,
        policy=RetryPolicy(max_attempts=attempts, base_seconds=0.01, max_seconds=0.05),
        sleep=(sleeps.append if sleeps is not None else (lambda _s: None)),
        transport=httpx.MockTransport(handler),
    )
    client.project_page_size = 2
    client.issue_page_size = 2
    return client


def test_project_pagination_follows_is_last() -> None:
    seen_starts = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == PROJECT_SEARCH_PATH
        start = int(request.url.params["startAt"])
        seen_starts.append(start)
        pages = {
            0: {"values": [{"id": "1", "key": "A"}, {"id": "2", "key": "B"}], "isLast": False},
            2: {"values": [{"id": "3", "key": "C"}], "isLast": True},
        }
        return httpx.Response(200, json=pages[start])

    with _client(handler) as client:
        projects = client.list_projects()

    assert [p["key"] for p in projects] == ["A", "B", "C"]
    assert seen_starts == [0, 2]


def test_issue_search_posts_jql_and_pages_by_total() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == ISSUE_SEARCH_PATH
        body = json.loads(request.content)
        bodies.append(body)
        issues = [{"id": str(body["startAt"] + i), "key": f"A-{body['startAt'] + i}"} for i in range(2)]
        if body["startAt"] >= 2:
            issues = issues[:1]
        return httpx.Response(200, json={"issues": issues, "total": 3})

    with _client(handler) as client:
        issues = client.list_issues("A")

    assert len(issues) == 3
    assert [b["startAt"] for b in bodies] == [0, 2]
    assert bodies[0]["jql"] == 'project = "A" ORDER BY updated ASC'
    assert "duedate" in bodies[0]["fields"]


def test_rate_limit_honours_retry_after() -> None:
    attempts = []
    sleeps: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) == 1:
            return httpx.Response(429, headers={"Retry-After": "0.02"})
        return httpx.Response(200, json={"accountId": "bot"})

    with _client(handler, sleeps=sleeps) as client:
        assert client.ping()["accountId"] == "bot"

    assert len(attempts) == 2
    assert sleeps == [0.02]


def test_server_errors_exhaust_retries() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(503)

    with _client(handler, attempts=3) as client:
        with pytest.raises(JiraTransientError):
            client.ping()
    assert len(attempts) == 3


def test_unauthorized_is_not_retried() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(401)

    with _client(handler) as client:
        with pytest.raises(JiraAuthenticationError):
            client.ping()
    assert len(attempts) == 1


def test_malformed_json_is_permanent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    with _client(handler) as client:
        with pytest.raises(JiraPermanentError):
            client.list_projects()


def test_delta_jql_uses_local_minutes() -> None:
    since = dt.datetime(2025, 3, 10, 0, 15, tzinfo=dt.timezone.utc)
    assert format_jql_datetime(since, "Asia/Tokyo") == "2025/03/10 09:15"
    assert build_issue_jql('we"ird', since) == (
        'project = "we\\"ird" AND updated >= "2025/03/10 09:15" ORDER BY updated ASC'
    )
