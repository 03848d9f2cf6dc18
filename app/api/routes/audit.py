from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.audit import AuditLogFilters, AuditLogRead
from app.schemas.common import CursorPage
from app.services import audit_service

router = APIRouter(prefix="/admin/audit-logs", tags=["admin"])


@router.get("", response_model=CursorPage[AuditLogRead])
def list_audit_logs(
    filters: AuditLogFilters = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, next_cursor = audit_service.list_audit_logs(
        db,
        user_id=filters.user_id,
        action=filters.action,
        target_type=filters.target_type,
        target_id=filters.target_id,
        date_from=filters.date_from,
        date_to=filters.date_to,
        cursor=filters.cursor,
        limit=filters.limit,
    )
    return CursorPage[AuditLogRead](
        items=[AuditLogRead.from_model(item) for item in items],
        next_cursor=next_cursor,
    )


@router.get("/{entry_id}", response_model=AuditLogRead)
def read_audit_log(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    return AuditLogRead.from_model(audit_service.get_audit_log(db, entry_id))
