from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import ClientStatus
from app.schemas.common import PhoneNumber, UrlText, WalletAddress


class ClientApply(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=100)
    contact_email: EmailStr
    contact_phone: PhoneNumber | None = None
    country: str = Field(..., min_length=2, max_length=50)
    legal_entity_number: str | None = Field(default=None, max_length=100)
    wallet_address: WalletAddress | None = None
    logo_url: UrlText | None = None


class ClientUpdate(BaseModel):
    company_name: str | None = Field(default=None, min_length=2, max_length=100)
    contact_email: EmailStr | None = None
    contact_phone: PhoneNumber | None = None
    country: str | None = Field(default=None, min_length=2, max_length=50)
    legal_entity_number: str | None = Field(default=None, max_length=100)
    wallet_address: WalletAddress | None = None
    logo_url: UrlText | None = None


class ClientStatusUpdate(BaseModel):
    status: ClientStatus


class ClientRead(BaseModel):
    id: int
    user_id: int
    company_name: str
    contact_email: str
    contact_phone: str | None = None
    country: str
    legal_entity_number: str | None = None
    wallet_address: str | None = None
    logo_url: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
