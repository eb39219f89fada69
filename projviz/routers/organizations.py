"""Organization hierarchy endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user, require_admin
from projviz.db.session import get_db
from projviz.schemas.organization import (
    OrganizationCreate,
    OrganizationOut,
    OrganizationTreeOut,
    OrganizationUpdate,
)
from projviz.services import organizations as org_service

router = APIRouter()


@router.get("", dependencies=[Depends(get_current_user)])
def get_organizations(
    tree: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> dict[str, list]:
    orgs = org_service.list_organizations(db)
    if tree:
        return {"data": [OrganizationTreeOut.model_validate(node) for node in org_service.build_tree(orgs)]}
    return {"data": [OrganizationOut.model_validate(org) for org in orgs]}


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def post_organization(payload: OrganizationCreate, db: Session = Depends(get_db)) -> OrganizationOut:
    org = org_service.create_organization(db, name=payload.name, parent_id=payload.parent_id)
    return OrganizationOut.model_validate(org)


@router.get("/{org_id}", response_model=OrganizationOut, dependencies=[Depends(get_current_user)])
def get_organization(org_id: int, db: Session = Depends(get_db)) -> OrganizationOut:
    return OrganizationOut.model_validate(org_service.get_organization(db, org_id))


@router.get("/{org_id}/children", dependencies=[Depends(get_current_user)])
def get_children(org_id: int, db: Session = Depends(get_db)) -> dict[str, list[OrganizationOut]]:
    return {"data": [OrganizationOut.model_validate(org) for org in org_service.list_children(db, org_id)]}


@router.put("/{org_id}", response_model=OrganizationOut, dependencies=[Depends(require_admin)])
def put_organization(org_id: int, payload: OrganizationUpdate, db: Session = Depends(get_db)) -> OrganizationOut:
    org = org_service.update_organization(
        db,
        org_id,
        name=payload.name,
        parent_id=payload.parent_id,
        reparent="parent_id" in payload.model_fields_set,
    )
    return OrganizationOut.model_validate(org)


@router.delete(
    "/{org_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
    dependencies=[Depends(require_admin)],
)
def remove_organization(org_id: int, db: Session = Depends(get_db)) -> Response:
    org_service.delete_organization(db, org_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
