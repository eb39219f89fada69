"""Jira REST v3 client wrapper with typed errors and retries."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable, Iterator
from zoneinfo import ZoneInfo

import httpx

from projviz.core.config import settings
from projviz.core.exceptions import (
    JiraAuthenticationError,
    JiraPermanentError,
    JiraTransientError,
)
from projviz.integrations.jira.retry import RetryPolicy, call_with_retry
from projviz.services.jira_settings import JiraCredentials

logger = logging.getLogger(__name__)

PROJECT_SEARCH_PATH = "/rest/api/3/project/search"
ISSUE_SEARCH_PATH = "/rest/api/3/issue/search"
MYSELF_PATH = "/rest/api/3/myself"
ISSUE_FIELDS = ["summary", "status", "priority", "issuetype", "assignee", "duedate", "updated", "project"]
TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def format_jql_datetime(value: dt.datetime, tz_name: str | None = None) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(ZoneInfo(tz_name or settings.TIMEZONE)).strftime("%Y/%m/%d %H:%M")


def build_issue_jql(project_key: str, updated_since: dt.datetime | None = None) -> str:
    escaped = project_key.replace("\\", "\\\\").replace('"', '\\"')
    clauses = [f'project = "{escaped}"']
    if updated_since is not None:
        clauses.append(f'updated >= "{format_jql_datetime(updated_since)}"')
    return " AND ".join(clauses) + " ORDER BY updated ASC"


class JiraClient:
    def __init__(
        self,
        credentials: JiraCredentials,
        *,
        timeout: float | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], object] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = credentials.base_url.rstrip("/")
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep
        self.project_page_size = settings.JIRA_PROJECT_PAGE_SIZE
        self.issue_page_size = settings.JIRA_ISSUE_PAGE_SIZE
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout or settings.JIRA_TIMEOUT_SECONDS,
            auth=(credentials.email, credentials.api_token),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection pool; an in-flight request on another thread fails with a transport error."""
        self._client.close()

    def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise JiraTransientError(f"timeout calling {path}: {exc}") from exc
        except (httpx.TransportError, RuntimeError) as exc:
            # RuntimeError: the client was closed underneath us.
            raise JiraTransientError(f"network error calling {path}: {exc}") from exc

        status = response.status_code
        if status in (401, 403):
            raise JiraAuthenticationError(f"jira rejected credentials ({status})", status=status)
        if status in TRANSIENT_STATUSES:
            raise JiraTransientError(
                f"jira returned {status} for {path}",
                status=status,
                retry_after=_retry_after(response) if status == 429 else None,
            )
        if status >= 400:
            raise JiraPermanentError(f"jira returned {status} for {path}", status=status)
        try:
            return response.json()
        except ValueError as exc:
            raise JiraPermanentError(f"malformed response from {path}", status=status) from exc

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        extra = {"sleep": self._sleep} if self._sleep is not None else {}
        return call_with_retry(
            lambda: self._send(method, path, **kwargs),
            policy=self.policy,
            description=f"{method} {path}",
            **extra,
        )

    def ping(self) -> dict[str, Any]:
        data = self._request("GET", MYSELF_PATH)
        if not isinstance(data, dict):
            raise JiraPermanentError("malformed response from /myself")
        return data

    def iter_projects(self) -> Iterator[dict[str, Any]]:
        start_at = 0
        while True:
            page = self._request(
                "GET",
                PROJECT_SEARCH_PATH,
                params={"startAt": start_at, "maxResults": self.project_page_size, "expand": "lead"},
            )
            if not isinstance(page, dict):
                raise JiraPermanentError("malformed project search response")
            values = [item for item in list(page.get("values") or []) if isinstance(item, dict)]
            yield from values
            if page.get("isLast", True) or not values:
                return
            start_at += len(values)

    def list_projects(self) -> list[dict[str, Any]]:
        return list(self.iter_projects())

    def iter_issues(self, project_key: str, updated_since: dt.datetime | None = None) -> Iterator[dict[str, Any]]:
        jql = build_issue_jql(project_key, updated_since)
        start_at = 0
        while True:
            page = self._request(
                "POST",
                ISSUE_SEARCH_PATH,
                json={"jql": jql, "startAt": start_at, "maxResults": self.issue_page_size, "fields": ISSUE_FIELDS},
            )
            if not isinstance(page, dict):
                raise JiraPermanentError("malformed issue search response")
            issues = [item for item in list(page.get("issues") or []) if isinstance(item, dict)]
            yield from issues
            total = int(page.get("total") or 0)
            if not issues or start_at + len(issues) >= total:
                return
            start_at += len(issues)

    def list_issues(self, project_key: str, updated_since: dt.datetime | None = None) -> list[dict[str, Any]]:
        return list(self.iter_issues(project_key, updated_since))
