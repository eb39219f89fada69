"""Stored Jira credentials and their resolution order (stored row, then environment)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.core.exceptions import BadRequestError
from projviz.models.jira_setting import JiraSetting

logger = logging.getLogger(__name__)

MASK = "•••••"


@dataclass(frozen=True)
class JiraCredentials:
    base_url: str
    email: str
    api_token: str


def mask_token(token: str | None) -> str:
    if not token:
        return ""
    if len(token) <= 4:
        return MASK
    return MASK + token[-4:]


def get_stored(db: Session) -> JiraSetting | None:
    return db.scalar(select(JiraSetting).order_by(JiraSetting.id).limit(1))


def save_settings(db: Session, *, jira_url: str, email: str, api_token: str) -> JiraSetting:
    record = get_stored(db)
    if record is None:
        record = JiraSetting(jira_url=jira_url.rstrip("/"), email=email, api_token=api_token)
        db.add(record)
    else:
        record.jira_url = jira_url.rstrip("/")
        record.email = email
        record.api_token = api_token
    db.commit()
    db.refresh(record)
    logger.info("Jira settings saved for %s", record.jira_url)
    return record


def resolve_credentials(
    db: Session,
    *,
    jira_url: str | None = None,
    email: str | None = None,
    api_token: str | None = None,
) -> JiraCredentials:
    """Explicit values win, then the stored row, then JIRA_* environment variables."""
    stored = get_stored(db)
    base_url = jira_url or (stored.jira_url if stored else "") or settings.JIRA_BASE_URL
    account = email or (stored.email if stored else "") or settings.JIRA_EMAIL
    token = api_token or (stored.api_token if stored else "") or settings.JIRA_API_TOKEN
    if not (base_url.strip() and account.strip() and token.strip()):
        raise BadRequestError("jira settings not configured")
    return JiraCredentials(base_url=base_url.strip().rstrip("/"), email=account.strip(), api_token=token.strip())
