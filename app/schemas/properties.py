from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from app.models.enums import PropertyStatus
from app.schemas.common import UrlText

TOKEN_SYMBOL_PATTERN = r"^[A-Z0-9]{2,10}$"


class PropertySortField(str, Enum):
    CREATED_AT = "created_at"
    TITLE = "title"
    TOTAL_PRICE = "total_price"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=2000)
    country: str = Field(..., min_length=2, max_length=56)
    city: str = Field(..., min_length=1, max_length=56)
    address: str = Field(..., min_length=5, max_length=200)
    image_urls: list[UrlText] = Field(default_factory=list, max_length=10)
    total_price: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)
    token_price: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)
    irr: Decimal = Field(..., gt=0, max_digits=7, decimal_places=2)
    apr: Decimal = Field(..., gt=0, max_digits=7, decimal_places=2)
    value_growth: Decimal = Field(..., gt=0, max_digits=7, decimal_places=2)
    min_investment: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)
    tokens_available_percent: Decimal = Field(..., gt=0, le=100, decimal_places=2)
    token_symbol: str = Field(..., pattern=TOKEN_SYMBOL_PATTERN)


class PropertyUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=5, max_length=100)
    description: str | None = Field(default=None, min_length=20, max_length=2000)
    country: str | None = Field(default=None, min_length=2, max_length=56)
    city: str | None = Field(default=None, min_length=1, max_length=56)
    address: str | None = Field(default=None, min_length=5, max_length=200)
    image_urls: list[UrlText] | None = Field(default=None, max_length=10)
    total_price: Decimal | None = Field(default=None, gt=0, max_digits=20, decimal_places=2)
    token_price: Decimal | None = Field(default=None, gt=0, max_digits=20, decimal_places=2)
    irr: Decimal | None = Field(default=None, gt=0, max_digits=7, decimal_places=2)
    apr: Decimal | None = Field(default=None, gt=0, max_digits=7, decimal_places=2)
    value_growth: Decimal | None = Field(default=None, gt=0, max_digits=7, decimal_places=2)
    min_investment: Decimal | None = Field(default=None, gt=0, max_digits=20, decimal_places=2)
    tokens_available_percent: Decimal | None = Field(default=None, gt=0, le=100, decimal_places=2)
    token_symbol: str | None = Field(default=None, pattern=TOKEN_SYMBOL_PATTERN)


class PropertyStatusUpdate(BaseModel):
    status: PropertyStatus
    notes: str | None = Field(default=None, max_length=1000)
    is_featured: bool | None = None


class PropertyFilters(BaseModel):
    status: PropertyStatus | None = None
    client_id: int | None = Field(default=None, ge=1)
    country: str | None = Field(default=None, max_length=56)
    city: str | None = Field(default=None, max_length=56)
    is_featured: bool | None = None
    sort_by: PropertySortField = PropertySortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class PropertyRead(BaseModel):
    id: int
    client_id: int
    title: str
    description: str
    country: str
    city: str
    address: str
    image_urls: list[str]
    total_price: Decimal
    token_price: Decimal
    irr: Decimal
    apr: Decimal
    value_growth: Decimal
    min_investment: Decimal
    tokens_available_percent: Decimal
    token_symbol: str
    status: str
    is_featured: bool
    review_notes: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
