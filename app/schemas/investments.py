from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.enums import InvestmentStatus, PaymentMethod
from app.schemas.common import WalletAddress


class InvestmentCreate(BaseModel):
    token_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)
    wallet_address: WalletAddress
    payment_method: PaymentMethod = PaymentMethod.CRYPTO
    currency: str = Field(default="USD", pattern=r"^[A-Z]{3,5}$")


class InvestmentStatusUpdate(BaseModel):
    status: InvestmentStatus
    tx_hash: str | None = Field(default=None, max_length=66)


class InvestmentFilters(BaseModel):
    status: InvestmentStatus | None = None
    token_id: int | None = Field(default=None, ge=1)
    property_id: int | None = Field(default=None, ge=1)
    investor_id: int | None = Field(default=None, ge=1)


class InvestmentRead(BaseModel):
    id: int
    investor_id: int
    token_id: int
    property_id: int
    wallet_id: int | None = None
    wallet_address: str
    amount: Decimal
    price_per_token: Decimal
    token_quantity: Decimal
    total_value: Decimal
    currency: str
    payment_method: str
    status: str
    tx_hash: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
