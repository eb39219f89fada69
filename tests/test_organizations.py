from __future__ import annotations

import pytest

from projviz.core.exceptions import BadRequestError, ConflictError, NotFoundError
from projviz.models.organization import Organization
from projviz.services import organizations as org_service


def test_paths_and_levels_follow_the_parent(db) -> None:
    root = org_service.create_organization(db, name="HQ")
    child = org_service.create_organization(db, name="Sales", parent_id=root.id)
    grandchild = org_service.create_organization(db, name="Tokyo", parent_id=child.id)

    assert root.path == f"/{root.id}/"
    assert child.path == f"/{root.id}/{child.id}/"
    assert grandchild.path == f"/{root.id}/{child.id}/{grandchild.id}/"
    assert [root.level, child.level, grandchild.level] == [0, 1, 2]


def test_depth_limit(db) -> None:
    a = org_service.create_organization(db, name="A")
    b = org_service.create_organization(db, name="B", parent_id=a.id)
    c = org_service.create_organization(db, name="C", parent_id=b.id)

    with pytest.raises(BadRequestError):
        org_service.create_organization(db, name="D", parent_id=c.id)


def test_unknown_parent(db) -> None:
    with pytest.raises(NotFoundError):
        org_service.create_organization(db, name="Orphan", parent_id=999)


def test_reparent_rewrites_subtree_paths(db) -> None:
    a = org_service.create_organization(db, name="A")
    b = org_service.create_organization(db, name="B")
    child = org_service.create_organization(db, name="Child", parent_id=a.id)

    moved = org_service.update_organization(db, a.id, parent_id=b.id, reparent=True)

    db.refresh(child)
    assert moved.path == f"/{b.id}/{a.id}/"
    assert moved.level == 1
    assert child.path == f"/{b.id}/{a.id}/{child.id}/"
    assert child.level == 2


def test_move_to_root(db) -> None:
    a = org_service.create_organization(db, name="A")
    b = org_service.create_organization(db, name="B", parent_id=a.id)

    moved = org_service.update_organization(db, b.id, parent_id=None, reparent=True)

    assert moved.parent_id is None
    assert moved.path == f"/{b.id}/"
    assert moved.level == 0


def test_cycles_are_rejected(db) -> None:
    a = org_service.create_organization(db, name="A")
    b = org_service.create_organization(db, name="B", parent_id=a.id)

    with pytest.raises(BadRequestError):
        org_service.update_organization(db, a.id, parent_id=a.id, reparent=True)
    with pytest.raises(BadRequestError):
        org_service.update_organization(db, a.id, parent_id=b.id, reparent=True)


def test_move_that_would_exceed_depth_is_rejected(db) -> None:
    a = org_service.create_organization(db, name="A")
    b = org_service.create_organization(db, name="B", parent_id=a.id)
    other = org_service.create_organization(db, name="Other")
    nested = org_service.create_organization(db, name="Nested", parent_id=other.id)

    with pytest.raises(BadRequestError):
        org_service.update_organization(db, a.id, parent_id=nested.id, reparent=True)
    db.rollback()
    assert db.get(Organization, b.id).path == f"/{a.id}/{b.id}/"


def test_rename_keeps_parent(db) -> None:
    a = org_service.create_organization(db, name="A")
    b = org_service.create_organization(db, name="B", parent_id=a.id)

    renamed = org_service.update_organization(db, b.id, name="Bee")

    assert renamed.name == "Bee"
    assert renamed.parent_id == a.id


def test_delete_guards(db, seed_project) -> None:
    parent = org_service.create_organization(db, name="A")
    child = org_service.create_organization(db, name="B", parent_id=parent.id)

    with pytest.raises(ConflictError, match="child organizations"):
        org_service.delete_organization(db, parent.id)

    seed_project("DEMO", organization_id=child.id)
    with pytest.raises(ConflictError, match="assigned projects"):
        org_service.delete_organization(db, child.id)


def test_delete_child_then_parent(db) -> None:
    parent = org_service.create_organization(db, name="A")
    child = org_service.create_organization(db, name="B", parent_id=parent.id)

    org_service.delete_organization(db, child.id)
    org_service.delete_organization(db, parent.id)

    assert db.query(Organization).count() == 0


def test_build_tree_nests_children(db) -> None:
    a = org_service.create_organization(db, name="A")
    org_service.create_organization(db, name="B", parent_id=a.id)
    org_service.create_organization(db, name="C")

    tree = org_service.build_tree(org_service.list_organizations(db))

    assert [node["name"] for node in tree] == ["A", "C"]
    assert [node["name"] for node in tree[0]["children"]] == ["B"]
