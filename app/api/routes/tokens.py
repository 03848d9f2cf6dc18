from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.blockchain import TokenBalanceRead
from app.schemas.common import Page
from app.schemas.tokens import TokenCreate, TokenFilters, TokenMetadataRead, TokenRead, TokenUpdate
from app.services import token_service
from app.services.audit_service import log_action

router = APIRouter(prefix="/tokens", tags=["tokens"])
admin_router = APIRouter(prefix="/admin/tokens", tags=["admin"])


@router.get("", response_model=Page[TokenRead])
def list_public_tokens(params: PaginationParams = Depends(), db: Session = Depends(get_db)):
    items, meta = token_service.list_public_tokens(db, params=params)
    return Page[TokenRead](items=[TokenRead.model_validate(item) for item in items], meta=meta)


@router.get("/{token_id}", response_model=TokenRead)
def read_token(token_id: int, db: Session = Depends(get_db)):
    return TokenRead.model_validate(token_service.get_public_token(db, token_id))


@router.get("/{token_id}/metadata", response_model=TokenMetadataRead)
def token_metadata(
    token_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    token, info = token_service.get_token_metadata(db, token_id)
    if info is None:
        return TokenMetadataRead(
            token_id=token.id,
            contract_address=None,
            network=token.blockchain,
            on_chain=False,
        )
    return TokenMetadataRead(
        token_id=token.id,
        contract_address=token.contract_address,
        network=info.network,
        on_chain=info.is_erc20,
        name=info.name,
        symbol=info.symbol,
        decimals=info.decimals,
        total_supply=str(info.total_supply) if info.total_supply is not None else None,
    )


@router.get("/{token_id}/balance/{address}", response_model=TokenBalanceRead)
def token_balance(
    token_id: int,
    address: str,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    token, balance = token_service.get_token_balance(db, token_id, address)
    return TokenBalanceRead(
        token_id=token.id,
        contract_address=balance.contract_address,
        holder=balance.holder,
        network=balance.network,
        raw_balance=str(balance.raw),
        balance=balance.amount,
    )


@router.post("", response_model=TokenRead, status_code=status.HTTP_201_CREATED)
def create_token(
    payload: TokenCreate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    token = token_service.create_token(db, payload=payload, actor=current_user.email)
    log_action(
        db,
        user_id=current_user.id,
        action="token.create",
        target_type="token",
        target_id=str(token.id),
        details={"symbol": token.symbol, "property_id": token.property_id},
        commit=True,
    )
    return TokenRead.model_validate(token)


@router.patch("/{token_id}", response_model=TokenRead)
def update_token(
    token_id: int,
    payload: TokenUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    token = token_service.update_token(db, token_id, payload=payload, actor=current_user.email)
    log_action(
        db,
        user_id=current_user.id,
        action="token.update",
        target_type="token",
        target_id=str(token.id),
        commit=True,
    )
    return TokenRead.model_validate(token)


@router.delete("/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_token(
    token_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    token_service.delete_token(db, token_id)
    log_action(
        db,
        user_id=current_user.id,
        action="token.delete",
        target_type="token",
        target_id=str(token_id),
        commit=True,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.get("", response_model=Page[TokenRead])
def list_tokens(
    filters: TokenFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, meta = token_service.list_tokens(db, filters=filters, params=params)
    return Page[TokenRead](items=[TokenRead.model_validate(item) for item in items], meta=meta)
