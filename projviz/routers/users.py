"""User management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from projviz.core.deps import get_current_user, require_admin
from projviz.db.session import get_db
from projviz.models.user import User
from projviz.schemas.common import DataOut
from projviz.schemas.user import PasswordChange, UserCreate, UserOut, UserUpdate
from projviz.services.users import change_password, create_user, delete_user, list_users, update_user

router = APIRouter()


@router.get("", response_model=DataOut[UserOut], dependencies=[Depends(require_admin)])
def get_users(db: Session = Depends(get_db)) -> DataOut[UserOut]:
    return DataOut[UserOut](data=[UserOut.model_validate(u) for u in list_users(db)])


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def post_user(payload: UserCreate, db: Session = Depends(get_db)) -> UserOut:
    user = create_user(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
        is_active=payload.is_active,
    )
    return UserOut.model_validate(user)


@router.put("/{user_id}", response_model=UserOut, dependencies=[Depends(require_admin)])
def put_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db)) -> UserOut:
    changes = payload.model_dump(exclude_unset=True)
    return UserOut.model_validate(update_user(db, user_id, changes))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def remove_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)) -> Response:
    delete_user(db, user_id, actor=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/password")
def put_password(
    user_id: int,
    payload: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    change_password(
        db,
        user_id,
        actor=current_user,
        new_password=payload.new_password,
        old_password=payload.old_password,
    )
    return {"status": "ok"}
