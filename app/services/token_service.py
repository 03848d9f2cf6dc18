from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.models.domain import Investment, Property, Token
from app.models.enums import NotificationType, PropertyStatus
from app.schemas.tokens import TokenCreate, TokenFilters, TokenUpdate
from app.services import blockchain_service, notification_service
from app.services.blockchain_service import ERC20Info, TokenBalance
from app.services.property_service import get_property, symbol_in_use

logger = logging.getLogger(__name__)


def create_token(db: Session, *, payload: TokenCreate, actor: str) -> Token:
    prop = get_property(db, payload.property_id)
    if prop.status != PropertyStatus.APPROVED.value:
        raise BusinessRuleError("Tokens can only be created for approved properties")
    if db.scalar(select(Token.id).where(Token.property_id == prop.id)):
        raise ConflictError("Property already has a token")
    if symbol_in_use(db, payload.symbol, exclude_property_id=prop.id):
        raise ConflictError(f"Token symbol {payload.symbol} is already in use")
    if payload.contract_address:
        blockchain_service.validate_erc20_contract(payload.contract_address, payload.blockchain.value)

    token = Token(
        property_id=prop.id,
        name=payload.name,
        symbol=payload.symbol,
        decimals=payload.decimals,
        total_supply=payload.total_supply,
        contract_address=payload.contract_address.lower() if payload.contract_address else None,
        blockchain=payload.blockchain.value,
        is_transferable=payload.is_transferable,
        is_minted=bool(payload.contract_address),
        created_by=actor,
        updated_by=actor,
    )
    db.add(token)
    db.commit()
    db.refresh(token)
    logger.info("Token %s (%s) created for property %s", token.id, token.symbol, prop.id)
    return token


def get_token(db: Session, token_id: int) -> Token:
    token = db.get(Token, token_id)
    if not token:
        raise NotFoundError("Token", token_id)
    return token


def list_tokens(db: Session, *, filters: TokenFilters, params: PaginationParams) -> tuple[list[Token], PageMeta]:
    stmt = select(Token).order_by(Token.created_at.desc(), Token.id.desc())
    if filters.property_id:
        stmt = stmt.where(Token.property_id == filters.property_id)
    if filters.symbol:
        stmt = stmt.where(Token.symbol == filters.symbol.upper())
    if filters.blockchain:
        stmt = stmt.where(Token.blockchain == filters.blockchain.value)
    if filters.is_active is not None:
        stmt = stmt.where(Token.is_active.is_(filters.is_active))
    return paginate(db, stmt, params)


def list_public_tokens(db: Session, *, params: PaginationParams) -> tuple[list[Token], PageMeta]:
    stmt = (
        select(Token)
        .join(Property, Property.id == Token.property_id)
        .where(Token.is_active.is_(True), Property.status == PropertyStatus.APPROVED.value)
        .order_by(Token.created_at.desc(), Token.id.desc())
    )
    return paginate(db, stmt, params)


def get_public_token(db: Session, token_id: int) -> Token:
    token = get_token(db, token_id)
    if not token.is_active or token.property.status != PropertyStatus.APPROVED.value:
        raise NotFoundError("Token", token_id)
    return token


def update_token(db: Session, token_id: int, *, payload: TokenUpdate, actor: str) -> Token:
    token = get_token(db, token_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    address = changes.get("contract_address")
    if address:
        blockchain_service.validate_erc20_contract(address, token.blockchain)
        changes["contract_address"] = address.lower()
    for field, value in changes.items():
        setattr(token, field, value)
    token.updated_by = actor

    notification_service.send_notification(
        db,
        user_id=token.property.client.user_id,
        type=NotificationType.TOKEN_UPDATED,
        title=f"Token {token.symbol} updated",
        message=f"Token settings for '{token.property.title}' were changed.",
        payload={"token_id": token.id, "fields": sorted(changes)},
        commit=False,
    )
    db.commit()
    db.refresh(token)
    return token


def delete_token(db: Session, token_id: int) -> None:
    token = get_token(db, token_id)
    if db.scalar(select(Investment.id).where(Investment.token_id == token.id).limit(1)):
        raise ConflictError("Token has investments and cannot be deleted")
    db.delete(token)
    db.commit()


def get_token_metadata(db: Session, token_id: int) -> tuple[Token, ERC20Info | None]:
    token = get_token(db, token_id)
    if not token.contract_address:
        return token, None
    return token, blockchain_service.get_erc20_info(token.contract_address, token.blockchain)


def get_token_balance(db: Session, token_id: int, holder: str) -> tuple[Token, TokenBalance]:
    token = get_token(db, token_id)
    if not token.contract_address:
        raise BusinessRuleError("Token has not been deployed on-chain yet")
    balance = blockchain_service.get_token_balance(
        token.contract_address,
        holder,
        token.blockchain,
        decimals=token.decimals,
    )
    return token, balance
