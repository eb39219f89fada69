"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    viewer = "viewer"


class StatusCategory(str, enum.Enum):
    to_do = "To Do"
    in_progress = "In Progress"
    done = "Done"


class DelayStatus(str, enum.Enum):
    red = "RED"
    yellow = "YELLOW"
    green = "GREEN"


class SyncType(str, enum.Enum):
    full = "FULL"
    delta = "DELTA"


class SyncStatus(str, enum.Enum):
    running = "RUNNING"
    success = "SUCCESS"
    failure = "FAILURE"


class NotificationType(str, enum.Enum):
    sync_completed = "SYNC_COMPLETED"
    sync_failed = "SYNC_FAILED"


class AuditAction(str, enum.Enum):
    create = "CREATE"
    update = "UPDATE"
    delete = "DELETE"
    view = "VIEW"
    login = "LOGIN"
    logout = "LOGOUT"
    sync = "SYNC"


def enum_column_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [e.value for e in enum_cls]
