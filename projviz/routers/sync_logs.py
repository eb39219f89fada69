"""Recent sync history."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user
from projviz.db.session import get_db
from projviz.schemas.common import DataOut
from projviz.schemas.sync import SyncLogOut
from projviz.services.sync_logs import list_recent

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("", response_model=DataOut[SyncLogOut])
def get_sync_logs(db: Session = Depends(get_db)) -> DataOut[SyncLogOut]:
    return DataOut[SyncLogOut](data=[SyncLogOut.model_validate(log) for log in list_recent(db)])
