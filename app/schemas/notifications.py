from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from app.core.roles import RoleCode
from app.models.enums import NotificationType


class NotificationRead(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    is_read: bool
    read_at: datetime | None = None
    payload: dict[str, Any] | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationFilters(BaseModel):
    is_read: bool | None = None
    type: NotificationType | None = None
    cursor: int | None = Field(default=None, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class NotificationCreate(BaseModel):
    user_id: int = Field(..., ge=1)
    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    payload: dict[str, Any] | None = None


class BroadcastRequest(BaseModel):
    user_ids: list[int] = Field(default_factory=list, max_length=1000)
    role: RoleCode | None = None
    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    payload: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _has_audience(self):
        if not self.user_ids and self.role is None:
            raise ValueError("Provide user_ids or role")
        return self


class BroadcastResult(BaseModel):
    sent: int


class UnreadCount(BaseModel):
    unread: int
