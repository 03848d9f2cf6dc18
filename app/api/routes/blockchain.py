from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.core.chain import NETWORKS, is_valid_address
from app.schemas.blockchain import AddressValidation, ContractInfoRead, NetworkRead, TransactionStatusRead
from app.services import blockchain_service

router = APIRouter(prefix="/blockchain", tags=["blockchain"])


@router.get("/networks", response_model=list[NetworkRead])
def list_networks(current_user: deps.AuthenticatedUser = Depends(deps.get_current_user)):
    return [NetworkRead.model_validate(blockchain_service.get_network_info(code)) for code in NETWORKS]


@router.get("/addresses/{address}/validate", response_model=AddressValidation)
def validate_address(address: str):
    return AddressValidation(address=address, valid=is_valid_address(address))


@router.get("/transactions/{tx_hash}", response_model=TransactionStatusRead)
def transaction_status(
    tx_hash: str,
    network: str | None = Query(default=None),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return TransactionStatusRead.model_validate(blockchain_service.get_transaction_status(tx_hash, network))


@router.get("/contracts/{address}", response_model=ContractInfoRead)
def contract_info(
    address: str,
    network: str | None = Query(default=None),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    info = blockchain_service.get_erc20_info(address, network)
    return ContractInfoRead(
        address=info.address,
        network=info.network,
        name=info.name,
        symbol=info.symbol,
        decimals=info.decimals,
        total_supply=str(info.total_supply) if info.total_supply is not None else None,
        is_erc20=info.is_erc20,
    )
