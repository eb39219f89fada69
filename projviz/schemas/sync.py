"""Schemas for sync triggers, logs, and stored Jira settings."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from projviz.core.sanitize import clean_email, clean_single_line
from projviz.models.enums import SyncStatus, SyncType


class SyncLogOut(BaseModel):
    id: int
    sync_type: SyncType
    executed_at: dt.datetime
    completed_at: dt.datetime | None = None
    status: SyncStatus
    projects_synced: int
    issues_synced: int
    error_count: int
    error_message: str | None = None
    duration_seconds: float | None = None

    class Config:
        from_attributes = True


class SyncTriggerRequest(BaseModel):
    sync_type: SyncType = SyncType.full


class SyncTriggerResponse(BaseModel):
    log_id: int
    status: SyncStatus = SyncStatus.running
    sync_type: SyncType


class JiraSettingsUpdate(BaseModel):
    jira_url: str = Field(..., min_length=1, max_length=512)
    email: str = Field(..., min_length=3, max_length=255)
    api_token: str = Field(..., min_length=1, max_length=512)

    @field_validator("jira_url", mode="before")
    @classmethod
    def normalize_url(cls, value: str) -> str:
        cleaned = clean_single_line(value).rstrip("/")
        if not cleaned.startswith(("https://", "http://")):
            raise ValueError("jira_url must be an http(s) URL")
        return cleaned

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)


class JiraConnectionTest(BaseModel):
    jira_url: str | None = None
    email: str | None = None
    api_token: str | None = None


class JiraSettingsOut(BaseModel):
    configured: bool
    jira_url: str = ""
    email: str = ""
    api_token_mask: str = ""
    updated_at: dt.datetime | None = None


class JiraConnectionResult(BaseModel):
    status: str = "ok"
    account_id: str | None = None
    display_name: str | None = None
