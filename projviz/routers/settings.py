"""Admin-only Jira settings, connection test, and sync control endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from projviz.core.deps import require_admin
from projviz.core.exceptions import BadGatewayError, JiraException, NotFoundError
from projviz.db.session import get_db
from projviz.integrations.jira import service
from projviz.integrations.jira.jobs import manager
from projviz.schemas.sync import (
    JiraConnectionResult,
    JiraConnectionTest,
    JiraSettingsOut,
    JiraSettingsUpdate,
    SyncTriggerRequest,
    SyncTriggerResponse,
)
from projviz.services import jira_settings

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


def _settings_out(db: Session) -> JiraSettingsOut:
    stored = jira_settings.get_stored(db)
    if stored is None:
        return JiraSettingsOut(configured=False)
    return JiraSettingsOut(
        configured=True,
        jira_url=stored.jira_url,
        email=stored.email,
        api_token_mask=jira_settings.mask_token(stored.api_token),
        updated_at=stored.updated_at,
    )


@router.get("/jira", response_model=JiraSettingsOut)
def get_jira_settings(db: Session = Depends(get_db)) -> JiraSettingsOut:
    return _settings_out(db)


@router.put("/jira", response_model=JiraSettingsOut)
def put_jira_settings(payload: JiraSettingsUpdate, db: Session = Depends(get_db)) -> JiraSettingsOut:
    jira_settings.save_settings(db, jira_url=payload.jira_url, email=payload.email, api_token=payload.api_token)
    return _settings_out(db)


@router.post("/jira/test", response_model=JiraConnectionResult)
def test_jira_connection(payload: JiraConnectionTest | None = None, db: Session = Depends(get_db)) -> JiraConnectionResult:
    payload = payload or JiraConnectionTest()
    credentials = jira_settings.resolve_credentials(
        db,
        jira_url=payload.jira_url,
        email=payload.email,
        api_token=payload.api_token,
    )
    client = service.build_client(credentials)
    try:
        myself = client.ping()
    except JiraException as exc:
        logger.warning("Jira connection test failed: %s", exc.message)
        raise BadGatewayError(f"jira connection failed: {exc.message}")
    finally:
        client.close()
    return JiraConnectionResult(
        account_id=myself.get("accountId"),
        display_name=myself.get("displayName"),
    )


@router.post("/jira/sync", response_model=SyncTriggerResponse, status_code=status.HTTP_202_ACCEPTED)
def trigger_sync(payload: SyncTriggerRequest | None = None) -> SyncTriggerResponse:
    payload = payload or SyncTriggerRequest()
    job = manager.start(payload.sync_type)
    return SyncTriggerResponse(log_id=job.log_id, sync_type=job.sync_type)


@router.post("/jira/sync/{log_id}/cancel", status_code=status.HTTP_202_ACCEPTED)
def cancel_sync(log_id: int) -> JSONResponse:
    if not manager.cancel(log_id):
        raise NotFoundError("no running sync with this id", details={"sync_log_id": log_id})
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content={"log_id": log_id, "status": "cancelling"})
