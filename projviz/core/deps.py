"""Common FastAPI dependencies for authentication and authorization."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from projviz.core.exceptions import AuthenticationException, ExpiredTokenError, InsufficientPermissionsError
from projviz.core.rbac import has_permission
from projviz.core.security import ACCESS_TOKEN_TYPE, decode_token
from projviz.db.session import get_db
from projviz.models.enums import UserRole
from projviz.models.user import User


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _extract_bearer_token(request)
    if not token:
        raise AuthenticationException("authorization header required", error_code="NOT_AUTHENTICATED")

    try:
        payload = decode_token(token)
    except ValueError as exc:
        if str(exc) == "expired_token":
            raise ExpiredTokenError("token has expired")
        raise AuthenticationException("invalid token", error_code="INVALID_TOKEN")
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationException("invalid token", error_code="INVALID_TOKEN")
    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise AuthenticationException("invalid token", error_code="INVALID_TOKEN")

    user = db.get(User, user_id)
    if not user:
        raise AuthenticationException("user not found", error_code="USER_NOT_FOUND")
    if not user.is_active:
        raise InsufficientPermissionsError("user account is disabled")

    # Picked up by the audit middleware after the response.
    request.state.user_id = user.id
    request.state.username = user.username
    return user


def require_permission(permission: str):
    def _checker(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user, permission):
            raise InsufficientPermissionsError("insufficient permissions")
        return user

    return _checker


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.admin:
        raise InsufficientPermissionsError("admin role required")
    return user
