"""Login: credential checks and access-token issuance."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from projviz.core.config import settings
from projviz.core.exceptions import AuthenticationException, InsufficientPermissionsError
from projviz.core.security import create_access_token, verify_password
from projviz.models.user import User
from projviz.services.users import find_user_by_email

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "invalid email or password"


@dataclass(frozen=True)
class AuthToken:
    access_token: str
    expires_in: int
    user: User


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _build_claims(user: User) -> dict[str, object]:
    return {"sub": str(user.id), "user_id": user.id, "email": user.email, "role": user.role.value}


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = find_user_by_email(db, email)
    # verify_password burns a dummy bcrypt check when the user is unknown.
    valid = verify_password(password, user.password_hash if user else None)
    if not user or not valid:
        logger.info("Login failed for %s", email)
        raise AuthenticationException(INVALID_CREDENTIALS, error_code="INVALID_CREDENTIALS")
    if not user.is_active:
        raise InsufficientPermissionsError("user account is disabled")
    return user


def login(db: Session, email: str, password: str) -> AuthToken:
    user = authenticate_user(db, email, password)
    user.last_login_at = _utcnow()
    db.commit()
    db.refresh(user)
    token = create_access_token(_build_claims(user))
    logger.info("User logged in: %s", user.email)
    return AuthToken(access_token=token, expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60, user=user)
