from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.models.domain import AuditLogEntry


class AuditLogFilters(BaseModel):
    user_id: int | None = Field(default=None, ge=1)
    action: str | None = Field(default=None, max_length=50)
    target_type: str | None = Field(default=None, max_length=50)
    target_id: str | None = Field(default=None, max_length=50)
    date_from: datetime | None = None
    date_to: datetime | None = None
    cursor: int | None = Field(default=None, ge=1)
    limit: int = Field(default=50, ge=1, le=200)


class AuditLogRead(BaseModel):
    id: int
    user_id: int | None = None
    user_email: str | None = None
    user_full_name: str | None = None
    action: str
    target_type: str | None = None
    target_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    success: bool
    details: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_model(cls, entry: AuditLogEntry) -> "AuditLogRead":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            user_email=entry.user.email if entry.user else None,
            user_full_name=entry.user.full_name if entry.user else None,
            action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            success=entry.success,
            details=entry.details,
            created_at=entry.created_at,
        )
