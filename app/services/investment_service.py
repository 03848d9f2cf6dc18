from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.chain import is_valid_address, is_valid_tx_hash
from app.core.config import settings
from app.core.exceptions import BusinessRuleError, ConflictError, ForbiddenError, NotFoundError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.models.domain import Investment, Investor, Token, Wallet
from app.models.enums import InvestmentStatus, NotificationType, PropertyStatus
from app.schemas.investments import InvestmentCreate, InvestmentFilters
from app.services import blockchain_service, notification_service
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)

QUANTITY_STEP = Decimal("0.00000001")
RESERVING_STATUSES = (InvestmentStatus.PENDING.value, InvestmentStatus.CONFIRMED.value)
TERMINAL_STATUSES = {InvestmentStatus.CANCELLED.value, InvestmentStatus.REFUNDED.value}
# Status changes an admin may apply
ALLOWED_TRANSITIONS = {
    InvestmentStatus.PENDING.value: {
        InvestmentStatus.CONFIRMED.value,
        InvestmentStatus.FAILED.value,
        InvestmentStatus.CANCELLED.value,
    },
    InvestmentStatus.CONFIRMED.value: {InvestmentStatus.REFUNDED.value},
    InvestmentStatus.FAILED.value: {
        InvestmentStatus.PENDING.value,
        InvestmentStatus.CONFIRMED.value,
        InvestmentStatus.CANCELLED.value,
    },
}


def reserved_quantity(db: Session, token_id: int) -> Decimal:
    total = db.scalar(
        select(func.coalesce(func.sum(Investment.token_quantity), 0)).where(
            Investment.token_id == token_id,
            Investment.status.in_(RESERVING_STATUSES),
        )
    )
    return Decimal(str(total or 0))


def create_investment(
    db: Session,
    *,
    investor: Investor,
    payload: InvestmentCreate,
    ip_address: str | None,
    user_agent: str | None,
) -> Investment:
    if not investor.is_verified:
        raise ForbiddenError("Investor must be verified before investing")

    token = db.get(Token, payload.token_id)
    if not token:
        raise NotFoundError("Token", payload.token_id)
    if not token.is_active:
        raise BusinessRuleError("Token is not active")
    prop = token.property
    if prop.status != PropertyStatus.APPROVED.value:
        raise BusinessRuleError("Property is not open for investment")

    if not is_valid_address(payload.wallet_address):
        raise BusinessRuleError("Invalid wallet address")
    address = payload.wallet_address.lower()
    wallet = db.scalar(select(Wallet).where(Wallet.address == address))
    if not wallet or wallet.investor_id != investor.id:
        raise ForbiddenError("Wallet address is not registered to this investor")

    price = Decimal(prop.token_price)
    amount = payload.amount
    if amount < price:
        raise BusinessRuleError(f"Amount must cover at least one token ({price})")
    if amount < Decimal(prop.min_investment):
        raise BusinessRuleError(f"Minimum investment is {prop.min_investment}")

    quantity = (amount / price).quantize(QUANTITY_STEP, rounding=ROUND_DOWN)
    available = Decimal(token.total_supply) - reserved_quantity(db, token.id)
    if quantity > available:
        raise BusinessRuleError(
            "Requested tokens exceed the remaining supply",
            details={"requested": str(quantity), "available": str(available)},
        )

    investment = Investment(
        investor_id=investor.id,
        token_id=token.id,
        property_id=prop.id,
        wallet_id=wallet.id,
        wallet_address=address,
        amount=amount,
        price_per_token=price,
        token_quantity=quantity,
        total_value=amount,
        currency=payload.currency,
        payment_method=payload.payment_method.value,
        status=InvestmentStatus.PENDING.value,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255] or None,
    )
    db.add(investment)
    db.commit()
    db.refresh(investment)
    logger.info("Investor %s reserved %s %s (investment %s)", investor.id, quantity, token.symbol, investment.id)
    return investment


def get_investment(db: Session, investment_id: int) -> Investment:
    investment = db.get(Investment, investment_id)
    if not investment:
        raise NotFoundError("Investment", investment_id)
    return investment


def get_investment_for(db: Session, investment_id: int, *, investor: Investor | None, is_admin: bool) -> Investment:
    investment = get_investment(db, investment_id)
    if is_admin:
        return investment
    if investor is None or investment.investor_id != investor.id:
        raise ForbiddenError("You can only view your own investments")
    return investment


def list_my_investments(db: Session, *, investor: Investor, params: PaginationParams) -> tuple[list[Investment], PageMeta]:
    stmt = (
        select(Investment)
        .where(Investment.investor_id == investor.id)
        .order_by(Investment.created_at.desc(), Investment.id.desc())
    )
    return paginate(db, stmt, params)


def list_investments(
    db: Session,
    *,
    filters: InvestmentFilters,
    params: PaginationParams,
) -> tuple[list[Investment], PageMeta]:
    stmt = select(Investment).order_by(Investment.created_at.desc(), Investment.id.desc())
    if filters.status:
        stmt = stmt.where(Investment.status == filters.status.value)
    if filters.token_id:
        stmt = stmt.where(Investment.token_id == filters.token_id)
    if filters.property_id:
        stmt = stmt.where(Investment.property_id == filters.property_id)
    if filters.investor_id:
        stmt = stmt.where(Investment.investor_id == filters.investor_id)
    return paginate(db, stmt, params)


def cancel_investment(db: Session, *, investor: Investor, investment_id: int) -> Investment:
    investment = get_investment_for(db, investment_id, investor=investor, is_admin=False)
    if investment.status != InvestmentStatus.PENDING.value:
        raise BusinessRuleError("Only pending investments can be cancelled")
    investment.status = InvestmentStatus.CANCELLED.value
    log_action(
        db,
        user_id=investor.user_id,
        action="investment.cancel",
        target_type="investment",
        target_id=str(investment.id),
    )
    db.commit()
    db.refresh(investment)
    return investment


def update_investment_status(
    db: Session,
    investment_id: int,
    *,
    status: InvestmentStatus,
    tx_hash: str | None,
    actor_id: int,
) -> Investment:
    investment = get_investment(db, investment_id)
    current = investment.status
    target = status.value
    if current in TERMINAL_STATUSES:
        raise BusinessRuleError(f"{current} investments cannot be updated")
    if target != current and target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise BusinessRuleError(f"Cannot change investment status from {current} to {target}")
    if current not in RESERVING_STATUSES and target in RESERVING_STATUSES:
        _ensure_supply(db, investment)

    if tx_hash:
        if not is_valid_tx_hash(tx_hash):
            raise BusinessRuleError("Transaction hash must be 0x followed by 64 hex characters")
        tx_hash = tx_hash.lower()
        duplicate = db.scalar(
            select(Investment.id).where(Investment.tx_hash == tx_hash, Investment.id != investment.id)
        )
        if duplicate:
            raise ConflictError("Transaction hash is already linked to another investment")
    if target == InvestmentStatus.CONFIRMED.value:
        tx_hash = tx_hash or investment.tx_hash
        if not tx_hash:
            raise BusinessRuleError("A confirmed investment requires a transaction hash")
        if settings.verify_tx_on_confirm:
            receipt = blockchain_service.get_transaction_status(tx_hash, investment_token_network(db, investment))
            if receipt.status != "SUCCESS":
                raise BusinessRuleError(f"Transaction is {receipt.status} on-chain")

    investment.status = target
    if tx_hash:
        investment.tx_hash = tx_hash

    if target == InvestmentStatus.CONFIRMED.value and current != target:
        investor = db.get(Investor, investment.investor_id)
        notification_service.send_notification(
            db,
            user_id=investor.user_id,
            type=NotificationType.INVESTMENT_CONFIRMED,
            title="Investment confirmed",
            message=f"Your investment of {investment.amount} {investment.currency} has been confirmed.",
            payload={"investment_id": investment.id, "tx_hash": investment.tx_hash},
            commit=False,
        )
    log_action(
        db,
        user_id=actor_id,
        action="investment.status_update",
        target_type="investment",
        target_id=str(investment.id),
        details={"from": current, "to": target, "tx_hash": investment.tx_hash},
    )
    db.commit()
    db.refresh(investment)
    return investment


def _ensure_supply(db: Session, investment: Investment) -> None:
    """A released investment may only reclaim its tokens if they are still unreserved."""
    token = db.get(Token, investment.token_id)
    available = Decimal(token.total_supply) - reserved_quantity(db, token.id)
    requested = Decimal(investment.token_quantity)
    if requested > available:
        raise BusinessRuleError(
            "Requested tokens exceed the remaining supply",
            details={"requested": str(requested), "available": str(available)},
        )


def investment_token_network(db: Session, investment: Investment) -> str:
    token = db.get(Token, investment.token_id)
    return token.blockchain if token else settings.default_blockchain
