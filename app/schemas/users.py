from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import UrlText


class UserRead(BaseModel):
    id: int
    email: str
    full_name: str
    auth_provider: str
    avatar_url: str | None = None
    status: str
    roles: list[str] = []
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("roles", mode="before")
    @classmethod
    def _role_codes(cls, value):
        return sorted(getattr(item, "code", item) for item in (value or []))


class UserProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    avatar_url: UrlText | None = None


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)
