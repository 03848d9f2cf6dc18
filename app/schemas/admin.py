from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from app.core.roles import RoleCode
from app.models.enums import UserStatus
from app.schemas.properties import SortOrder


class UserSortField(str, Enum):
    CREATED_AT = "created_at"
    EMAIL = "email"
    FULL_NAME = "full_name"


class UserFilters(BaseModel):
    role: RoleCode | None = None
    email: str | None = Field(default=None, max_length=255)
    status: UserStatus | None = None
    registered_from: date | None = None
    registered_to: date | None = None
    sort_by: UserSortField = UserSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class UserRolesUpdate(BaseModel):
    roles: list[RoleCode] = Field(..., min_length=1)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class TrendParams(BaseModel):
    days: int = Field(default=30, ge=1, le=365)


class PlatformSummary(BaseModel):
    users_total: int
    users_by_role: dict[str, int]
    properties_by_status: dict[str, int]
    tokens_total: int
    investments_total: int
    confirmed_investment_value: Decimal
    kyc_by_status: dict[str, int]


class RegistrationTrend(BaseModel):
    days: int
    total: int
    daily: dict[str, int]
