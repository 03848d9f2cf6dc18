from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class NetworkRead(BaseModel):
    code: str
    name: str
    chain_id: int | None = None
    expected_chain_id: int
    chain_id_matches: bool
    latest_block: int | None = None
    rpc_configured: bool
    explorer_url: str

    model_config = {"from_attributes": True}


class AddressValidation(BaseModel):
    address: str
    valid: bool


class ContractInfoRead(BaseModel):
    address: str
    network: str
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    total_supply: str | None = None
    is_erc20: bool


class TransactionStatusRead(BaseModel):
    tx_hash: str
    network: str
    status: str
    block_number: int | None = None
    gas_used: int | None = None

    model_config = {"from_attributes": True}


class TokenBalanceRead(BaseModel):
    token_id: int
    contract_address: str
    holder: str
    network: str
    raw_balance: str
    balance: Decimal
