from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class DocumentRead(BaseModel):
    id: int
    user_id: int
    property_id: int | None = None
    filename: str
    original_name: str
    mime_type: str
    size: int
    created_at: datetime

    model_config = {"from_attributes": True}
