from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.admin import (
    PlatformSummary,
    RegistrationTrend,
    TrendParams,
    UserFilters,
    UserRolesUpdate,
    UserStatusUpdate,
)
from app.schemas.common import Page
from app.schemas.users import UserRead
from app.services import admin_service, user_service

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(deps.require_roles(ADMIN_ROLES))],
)


@router.get("/users", response_model=Page[UserRead])
def list_users(
    filters: UserFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
):
    items, meta = admin_service.list_users(db, filters=filters, params=params)
    return Page[UserRead](items=[UserRead.model_validate(item) for item in items], meta=meta)


@router.get("/users/{user_id}", response_model=UserRead)
def read_user(user_id: int, db: Session = Depends(get_db)):
    return UserRead.model_validate(user_service.get_user(db, user_id))


@router.patch("/users/{user_id}/roles", response_model=UserRead)
def update_user_roles(
    user_id: int,
    payload: UserRolesUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    user = admin_service.update_user_roles(db, user_id, roles=payload.roles, actor_id=current_user.id)
    return UserRead.model_validate(user)


@router.patch("/users/{user_id}/status", response_model=UserRead)
def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    user = admin_service.update_user_status(db, user_id, status=payload.status, actor_id=current_user.id)
    return UserRead.model_validate(user)


@router.get("/summary", response_model=PlatformSummary)
def platform_summary(db: Session = Depends(get_db)):
    return admin_service.platform_summary(db)


@router.get("/registrations", response_model=RegistrationTrend)
def registration_trend(params: TrendParams = Depends(), db: Session = Depends(get_db)):
    return admin_service.registration_trend(db, days=params.days)
