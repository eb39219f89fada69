"""Service helpers for admin user management."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from projviz.core.exceptions import (
    AuthenticationException,
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
)
from projviz.core.security import hash_password, verify_password
from projviz.models.enums import UserRole
from projviz.models.user import User

logger = logging.getLogger(__name__)


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.id)))


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("user not found", details={"user_id": user_id})
    return user


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower()))


def _ensure_unique(db: Session, *, email: str | None, username: str | None, exclude_id: int | None = None) -> None:
    if email is not None:
        existing = find_user_by_email(db, email)
        if existing and existing.id != exclude_id:
            raise ConflictError("email already exists")
    if username is not None:
        existing = db.scalar(select(User).where(User.username == username))
        if existing and existing.id != exclude_id:
            raise ConflictError("username already exists")


def create_user(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    role: UserRole = UserRole.viewer,
    is_active: bool = True,
) -> User:
    _ensure_unique(db, email=email, username=username)
    user = User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created: %s (%s)", user.email, user.role.value)
    return user


def update_user(db: Session, user_id: int, changes: dict) -> User:
    user = get_user(db, user_id)
    _ensure_unique(db, email=changes.get("email"), username=changes.get("username"), exclude_id=user.id)
    for field in ("username", "email", "full_name", "role", "is_active"):
        if field in changes:
            value = changes[field]
            if value is None and field != "full_name":
                continue
            if field == "email" and value is not None:
                value = value.lower()
            setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("User updated: %s", user.email)
    return user


def delete_user(db: Session, user_id: int, *, actor: User) -> None:
    if actor.id == user_id:
        raise InsufficientPermissionsError("cannot delete yourself")
    user = get_user(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("User deleted: %s", user.email)


def change_password(
    db: Session,
    user_id: int,
    *,
    actor: User,
    new_password: str,
    old_password: str | None = None,
) -> None:
    """Admins may reset anyone; everyone else only themselves, proving the old password."""
    is_admin = actor.role == UserRole.admin
    if actor.id != user_id and not is_admin:
        raise InsufficientPermissionsError("cannot change another user's password")
    user = get_user(db, user_id)
    if not is_admin:
        if not old_password or not verify_password(old_password, user.password_hash):
            raise AuthenticationException("current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password changed for %s by %s", user.email, actor.email)
