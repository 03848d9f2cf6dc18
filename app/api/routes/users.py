from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.schemas.users import PasswordChangeRequest, UserProfileUpdate, UserRead
from app.services import user_service
from app.services.audit_service import log_action

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
def read_me(current_user: deps.AuthenticatedUser = Depends(deps.get_current_user)):
    return UserRead.model_validate(current_user.user)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    user = user_service.update_profile(db, current_user.user, payload)
    return UserRead.model_validate(user)


@router.put("/me/password")
def change_password(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    user_service.change_password(
        db,
        current_user.user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    log_action(
        db,
        user_id=current_user.id,
        action="user.password_change",
        target_type="user",
        target_id=str(current_user.id),
        commit=True,
    )
    return {"status": "ok"}
