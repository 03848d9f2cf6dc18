from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.api import deps
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.flags import FLAG_KEY_PATTERN, FlagRead, FlagUpdate
from app.services import flag_service
from app.services.audit_service import log_action

router = APIRouter(prefix="/flags", tags=["flags"])
admin_router = APIRouter(prefix="/admin/flags", tags=["admin"])


@router.get("", response_model=dict[str, bool])
def read_flags(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return flag_service.flag_map(db)


@admin_router.get("", response_model=list[FlagRead])
def list_flags(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    return [FlagRead.model_validate(flag) for flag in flag_service.list_flags(db)]


@admin_router.patch("/{key}", response_model=FlagRead)
def update_flag(
    payload: FlagUpdate,
    key: str = Path(..., pattern=FLAG_KEY_PATTERN),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
    context: deps.RequestContext = Depends(deps.get_request_context),
):
    flag = flag_service.update_flag(
        db,
        key,
        enabled=payload.enabled,
        description=payload.description,
        actor=current_user.email,
    )
    log_action(
        db,
        user_id=current_user.id,
        action="flag.update",
        target_type="feature_flag",
        target_id=key,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        details={"enabled": payload.enabled},
        commit=True,
    )
    return FlagRead.model_validate(flag)
