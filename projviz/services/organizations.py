"""Organization hierarchy stored as materialised paths ("/1/4/9/")."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.core.exceptions import BadRequestError, ConflictError, NotFoundError
from projviz.models.organization import Organization
from projviz.models.project import Project

logger = logging.getLogger(__name__)


def _child_path(parent: Organization | None, org_id: int) -> str:
    return f"{parent.path if parent else '/'}{org_id}/"


def _check_depth(level: int) -> None:
    if level >= settings.ORG_MAX_DEPTH:
        raise BadRequestError(
            "maximum organization depth exceeded",
            details={"max_depth": settings.ORG_MAX_DEPTH},
        )


def get_organization(db: Session, org_id: int) -> Organization:
    org = db.get(Organization, org_id)
    if not org:
        raise NotFoundError("organization not found", details={"organization_id": org_id})
    return org


def list_organizations(db: Session) -> list[Organization]:
    return list(db.scalars(select(Organization).order_by(Organization.level, Organization.name, Organization.id)))


def list_children(db: Session, org_id: int) -> list[Organization]:
    get_organization(db, org_id)
    return list(
        db.scalars(select(Organization).where(Organization.parent_id == org_id).order_by(Organization.name, Organization.id))
    )


def list_descendants(db: Session, org: Organization) -> list[Organization]:
    return list(
        db.scalars(
            select(Organization)
            .where(Organization.path.like(f"{org.path}%"), Organization.id != org.id)
            .order_by(Organization.level, Organization.id)
        )
    )


def build_tree(orgs: list[Organization]) -> list[dict[str, Any]]:
    nodes: dict[int, dict[str, Any]] = {}
    roots: list[dict[str, Any]] = []
    # Ordered by level, so parents are always seen first.
    for org in orgs:
        node = {
            "id": org.id,
            "name": org.name,
            "parent_id": org.parent_id,
            "path": org.path,
            "level": org.level,
            "created_at": org.created_at,
            "updated_at": org.updated_at,
            "children": [],
        }
        nodes[org.id] = node
        parent = nodes.get(org.parent_id) if org.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


def create_organization(db: Session, *, name: str, parent_id: int | None = None) -> Organization:
    parent = None
    if parent_id is not None:
        parent = db.get(Organization, parent_id)
        if not parent:
            raise NotFoundError("parent organization not found", details={"parent_id": parent_id})
    level = parent.level + 1 if parent else 0
    _check_depth(level)

    org = Organization(name=name, parent_id=parent_id, path="/", level=level)
    db.add(org)
    try:
        db.flush()
        org.path = _child_path(parent, org.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(org)
    logger.info("Organization created: id=%s path=%s", org.id, org.path)
    return org


def update_organization(
    db: Session,
    org_id: int,
    *,
    name: str | None = None,
    parent_id: int | None = None,
    reparent: bool = False,
) -> Organization:
    org = get_organization(db, org_id)
    if name is not None:
        org.name = name

    if reparent and parent_id != org.parent_id:
        _move(db, org, parent_id)

    db.commit()
    db.refresh(org)
    return org


def _move(db: Session, org: Organization, parent_id: int | None) -> None:
    parent = None
    if parent_id is not None:
        if parent_id == org.id:
            raise BadRequestError("organization cannot be its own parent")
        parent = db.get(Organization, parent_id)
        if not parent:
            raise NotFoundError("parent organization not found", details={"parent_id": parent_id})
        if f"/{org.id}/" in parent.path:
            raise BadRequestError("cannot move organization under its own descendant")

    descendants = list_descendants(db, org)
    new_level = parent.level + 1 if parent else 0
    subtree_height = max((d.level for d in descendants), default=org.level) - org.level
    _check_depth(new_level + subtree_height)

    old_path = org.path
    new_path = _child_path(parent, org.id)
    delta = new_level - org.level
    for node in descendants:
        node.path = new_path + node.path[len(old_path):]
        node.level += delta
    org.parent_id = parent_id
    org.path = new_path
    org.level = new_level
    logger.info("Organization %s moved: %s -> %s (%s descendants)", org.id, old_path, new_path, len(descendants))


def delete_organization(db: Session, org_id: int) -> None:
    org = get_organization(db, org_id)
    children = db.scalar(select(func.count()).select_from(Organization).where(Organization.parent_id == org_id)) or 0
    if children:
        raise ConflictError("organization has child organizations")
    projects = db.scalar(select(func.count()).select_from(Project).where(Project.organization_id == org_id)) or 0
    if projects:
        raise ConflictError("organization has assigned projects")
    db.delete(org)
    db.commit()
    logger.info("Organization deleted: id=%s", org_id)
