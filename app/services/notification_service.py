from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, NotFoundError
from app.models.domain import Notification, Role, User, UserRole
from app.models.enums import NotificationType
from app.services import notification_delivery

logger = logging.getLogger(__name__)


def send_notification(
    db: Session,
    *,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    payload: dict[str, Any] | None = None,
    commit: bool = True,
) -> Notification:
    if not db.get(User, user_id):
        raise NotFoundError("User", user_id)
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        payload=payload,
    )
    db.add(notification)
    db.flush()
    notification_delivery.enqueue(db, notification)
    if commit:
        db.commit()
        db.refresh(notification)
    return notification


def broadcast(
    db: Session,
    *,
    type: NotificationType,
    title: str,
    message: str,
    user_ids: Iterable[int] | None = None,
    role: str | None = None,
    payload: dict[str, Any] | None = None,
) -> int:
    targets: list[int] = list(user_ids or [])
    if role:
        targets.extend(
            db.scalars(
                select(UserRole.user_id).join(Role, Role.id == UserRole.role_id).where(Role.code == role)
            ).all()
        )

    sent = 0
    for user_id in dict.fromkeys(targets):
        if not db.get(User, user_id):
            logger.warning("Skipping broadcast to missing user %s", user_id)
            continue
        send_notification(
            db,
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            payload=payload,
            commit=False,
        )
        sent += 1
    db.commit()
    return sent


def list_notifications(
    db: Session,
    *,
    user_id: int,
    is_read: bool | None = None,
    type: NotificationType | None = None,
    cursor: int | None = None,
    limit: int = 10,
) -> tuple[list[Notification], int | None]:
    stmt = select(Notification).where(Notification.user_id == user_id).order_by(Notification.id.desc())
    if is_read is not None:
        stmt = stmt.where(Notification.is_read.is_(is_read))
    if type is not None:
        stmt = stmt.where(Notification.type == type.value)
    if cursor:
        stmt = stmt.where(Notification.id < cursor)
    rows = db.scalars(stmt.limit(limit + 1)).all()
    has_more = len(rows) > limit
    items = list(rows[:limit])
    next_cursor = items[-1].id if (has_more and items) else None
    return items, next_cursor


def unread_count(db: Session, user_id: int) -> int:
    return db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    ) or 0


def _owned(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification", notification_id)
    if notification.user_id != user_id:
        raise ForbiddenError("Notification belongs to another user")
    return notification


def mark_as_read(db: Session, *, notification_id: int, user_id: int) -> Notification:
    notification = _owned(db, notification_id, user_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_as_read(db: Session, user_id: int) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(timezone.utc))
    )
    db.commit()
    return result.rowcount or 0


def delete_notification(db: Session, *, notification_id: int, user_id: int) -> None:
    notification = _owned(db, notification_id, user_id)
    db.delete(notification)
    db.commit()
