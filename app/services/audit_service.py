from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.domain import AuditLogEntry


def log_action(
    db: Session,
    *,
    user_id: int | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    success: bool = True,
    details: dict[str, Any] | None = None,
    commit: bool = False,
) -> AuditLogEntry:
    entry = AuditLogEntry(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        ip_address=ip_address,
        user_agent=user_agent,
        success=success,
        details=details,
    )
    db.add(entry)
    if commit:
        db.commit()
    else:
        db.flush()
    return entry


def list_audit_logs(
    db: Session,
    *,
    user_id: int | None = None,
    action: str | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    cursor: int | None = None,
    limit: int = 50,
) -> tuple[list[AuditLogEntry], int | None]:
    stmt = select(AuditLogEntry).order_by(AuditLogEntry.id.desc())
    if user_id is not None:
        stmt = stmt.where(AuditLogEntry.user_id == user_id)
    if action:
        stmt = stmt.where(AuditLogEntry.action == action)
    if target_type:
        stmt = stmt.where(AuditLogEntry.target_type == target_type)
    if target_id:
        stmt = stmt.where(AuditLogEntry.target_id == target_id)
    if date_from:
        stmt = stmt.where(AuditLogEntry.created_at >= date_from)
    if date_to:
        stmt = stmt.where(AuditLogEntry.created_at <= date_to)
    if cursor:
        stmt = stmt.where(AuditLogEntry.id < cursor)
    rows = db.scalars(stmt.limit(limit + 1)).all()
    has_more = len(rows) > limit
    items = list(rows[:limit])
    next_cursor = items[-1].id if (has_more and items) else None
    return items, next_cursor


def get_audit_log(db: Session, entry_id: int) -> AuditLogEntry:
    entry = db.get(AuditLogEntry, entry_id)
    if not entry:
        raise NotFoundError("Audit log entry", entry_id)
    return entry
