"""Centralized RBAC policy."""

from __future__ import annotations

from projviz.models.enums import UserRole
from projviz.models.user import User

Permission = str

ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.admin: {
        "view_dashboard",
        "manage_organizations",
        "assign_projects",
        "manage_users",
        "configure_integrations",
        "trigger_sync",
        "view_audit",
    },
    UserRole.manager: {
        "view_dashboard",
        "assign_projects",
    },
    UserRole.viewer: {
        "view_dashboard",
    },
}


def has_permission(user: User, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(user.role, set())


def is_admin(user: User) -> bool:
    return user.role == UserRole.admin
