"""Authentication endpoints (login, me)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user
from projviz.db.session import get_db
from projviz.models.user import User
from projviz.schemas.auth import LoginRequest, TokenResponse
from projviz.schemas.user import UserOut
from projviz.services.auth import login

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login_user(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    result = login(db, payload.email, payload.password)
    return TokenResponse(
        access_token=result.access_token,
        expires_in=result.expires_in,
        user=UserOut.model_validate(result.user),
    )


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(current_user)
