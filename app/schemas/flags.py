from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

FLAG_KEY_PATTERN = r"^[a-z0-9][a-z0-9_.-]{1,99}$"


class FlagUpdate(BaseModel):
    enabled: bool
    description: str | None = Field(default=None, max_length=255)


class FlagRead(BaseModel):
    key: str
    enabled: bool
    description: str | None = None
    updated_by: str | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}
