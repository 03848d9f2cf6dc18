from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.common import CursorPage
from app.schemas.notifications import (
    BroadcastRequest,
    BroadcastResult,
    NotificationCreate,
    NotificationFilters,
    NotificationRead,
    UnreadCount,
)
from app.services import notification_service
from app.services.audit_service import log_action

router = APIRouter(prefix="/notifications", tags=["notifications"])
admin_router = APIRouter(prefix="/admin/notifications", tags=["admin"])


@router.get("", response_model=CursorPage[NotificationRead])
def list_notifications(
    filters: NotificationFilters = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    items, next_cursor = notification_service.list_notifications(
        db,
        user_id=current_user.id,
        is_read=filters.is_read,
        type=filters.type,
        cursor=filters.cursor,
        limit=filters.limit,
    )
    return CursorPage[NotificationRead](
        items=[NotificationRead.model_validate(item) for item in items],
        next_cursor=next_cursor,
    )


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return UnreadCount(unread=notification_service.unread_count(db, current_user.id))


@router.post("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return {"updated": notification_service.mark_all_as_read(db, current_user.id)}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    notification = notification_service.mark_as_read(db, notification_id=notification_id, user_id=current_user.id)
    return NotificationRead.model_validate(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    notification_service.delete_notification(db, notification_id=notification_id, user_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.post("", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def send_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    notification = notification_service.send_notification(
        db,
        user_id=payload.user_id,
        type=payload.type,
        title=payload.title,
        message=payload.message,
        payload=payload.payload,
    )
    return NotificationRead.model_validate(notification)


@admin_router.post("/broadcast", response_model=BroadcastResult)
def broadcast(
    payload: BroadcastRequest,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    sent = notification_service.broadcast(
        db,
        type=payload.type,
        title=payload.title,
        message=payload.message,
        user_ids=payload.user_ids,
        role=payload.role.value if payload.role else None,
        payload=payload.payload,
    )
    log_action(
        db,
        user_id=current_user.id,
        action="notification.broadcast",
        target_type="notification",
        details={"sent": sent, "role": payload.role.value if payload.role else None},
        commit=True,
    )
    return BroadcastResult(sent=sent)
