from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.core.chain import Blockchain
from app.schemas.common import WalletAddress
from app.schemas.properties import TOKEN_SYMBOL_PATTERN


class TokenCreate(BaseModel):
    property_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=2, max_length=100)
    symbol: str = Field(..., pattern=TOKEN_SYMBOL_PATTERN)
    decimals: int = Field(default=18, ge=0, le=18)
    total_supply: int = Field(..., gt=0)
    contract_address: WalletAddress | None = None
    blockchain: Blockchain = Blockchain.SEPOLIA
    is_transferable: bool = True


class TokenUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    contract_address: WalletAddress | None = None
    is_minted: bool | None = None
    is_active: bool | None = None
    is_transferable: bool | None = None


class TokenFilters(BaseModel):
    property_id: int | None = Field(default=None, ge=1)
    symbol: str | None = Field(default=None, max_length=10)
    blockchain: Blockchain | None = None
    is_active: bool | None = None


class TokenRead(BaseModel):
    id: int
    property_id: int
    name: str
    symbol: str
    decimals: int
    total_supply: int
    contract_address: str | None = None
    blockchain: str
    is_minted: bool
    is_active: bool
    is_transferable: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TokenMetadataRead(BaseModel):
    token_id: int
    contract_address: str | None
    network: str
    on_chain: bool
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    total_supply: str | None = None
