from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.crypto import encrypt_value
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.core.phone import normalize_phone
from app.core.roles import RoleCode
from app.models.domain import Investment, Investor, KycRecord, User, Wallet
from app.models.enums import KycStatus
from app.schemas.investors import InvestorApply, InvestorUpdate, WalletCreate
from app.services.audit_service import log_action
from app.services.user_service import grant_role

logger = logging.getLogger(__name__)

KYC_VERIFICATION_METHOD = "KYC"


def can_apply(db: Session, user: User) -> tuple[bool, str | None]:
    if db.scalar(select(Investor.id).where(Investor.user_id == user.id)):
        return False, "An investor profile already exists"
    return True, None


def apply_as_investor(db: Session, *, user: User, payload: InvestorApply) -> Investor:
    allowed, reason = can_apply(db, user)
    if not allowed:
        raise ConflictError(reason or "Cannot apply as investor")

    investor = Investor(user_id=user.id, **_profile_fields(payload.model_dump()))
    kyc_status = db.scalar(select(KycRecord.status).where(KycRecord.user_id == user.id))
    if kyc_status == KycStatus.VERIFIED.value:
        _mark_verified(investor, KYC_VERIFICATION_METHOD)
    db.add(investor)
    grant_role(db, user, RoleCode.INVESTOR)
    db.flush()
    log_action(
        db,
        user_id=user.id,
        action="investor.apply",
        target_type="investor",
        target_id=str(investor.id),
    )
    db.commit()
    db.refresh(investor)
    logger.info("User %s registered investor profile %s", user.id, investor.id)
    return investor


def get_investor(db: Session, investor_id: int) -> Investor:
    investor = db.get(Investor, investor_id)
    if not investor:
        raise NotFoundError("Investor", investor_id)
    return investor


def find_investor_by_user(db: Session, user_id: int) -> Investor | None:
    return db.scalar(select(Investor).where(Investor.user_id == user_id))


def get_investor_by_user(db: Session, user_id: int) -> Investor:
    investor = find_investor_by_user(db, user_id)
    if not investor:
        raise NotFoundError("Investor profile")
    return investor


def update_investor(db: Session, *, investor: Investor, payload: InvestorUpdate) -> Investor:
    for field, value in _profile_fields(payload.model_dump(exclude_unset=True)).items():
        setattr(investor, field, value)
    db.commit()
    db.refresh(investor)
    return investor


def update_verification(
    db: Session,
    investor_id: int,
    *,
    is_verified: bool,
    method: str | None,
    actor_id: int,
) -> Investor:
    investor = get_investor(db, investor_id)
    if is_verified:
        _mark_verified(investor, method or "MANUAL")
    else:
        investor.is_verified = False
        investor.verified_at = None
        investor.verification_method = None
    log_action(
        db,
        user_id=actor_id,
        action="investor.verified" if is_verified else "investor.revoked",
        target_type="investor",
        target_id=str(investor.id),
        details={"method": investor.verification_method},
    )
    db.commit()
    db.refresh(investor)
    return investor


def mark_verified_by_kyc(db: Session, user_id: int) -> Investor | None:
    """Flag the user's investor profile as verified after a successful KYC check."""
    investor = find_investor_by_user(db, user_id)
    if investor and not investor.is_verified:
        _mark_verified(investor, KYC_VERIFICATION_METHOD)
    return investor


def list_investors(
    db: Session,
    *,
    params: PaginationParams,
    is_verified: bool | None = None,
    country: str | None = None,
) -> tuple[list[Investor], PageMeta]:
    stmt = select(Investor).order_by(Investor.created_at.desc(), Investor.id.desc())
    if is_verified is not None:
        stmt = stmt.where(Investor.is_verified.is_(is_verified))
    if country:
        stmt = stmt.where(Investor.country.ilike(country))
    return paginate(db, stmt, params)


def add_wallet(db: Session, *, investor: Investor, payload: WalletCreate) -> Wallet:
    address = payload.address.lower()
    if db.scalar(select(Wallet.id).where(Wallet.address == address)):
        raise ConflictError("Wallet address is already registered")
    wallet = Wallet(investor_id=investor.id, address=address, blockchain=payload.blockchain.value)
    db.add(wallet)
    db.commit()
    db.refresh(wallet)
    return wallet


def list_wallets(db: Session, investor: Investor) -> list[Wallet]:
    return list(db.scalars(select(Wallet).where(Wallet.investor_id == investor.id).order_by(Wallet.id)).all())


def get_wallet(db: Session, wallet_id: int, *, investor: Investor | None = None) -> Wallet:
    wallet = db.get(Wallet, wallet_id)
    if not wallet:
        raise NotFoundError("Wallet", wallet_id)
    if investor is not None and wallet.investor_id != investor.id:
        raise ForbiddenError("Wallet belongs to another investor")
    return wallet


def update_wallet_verification(db: Session, wallet_id: int, *, is_verified: bool, actor_id: int) -> Wallet:
    wallet = get_wallet(db, wallet_id)
    wallet.is_verified = is_verified
    wallet.verified_at = datetime.now(timezone.utc) if is_verified else None
    log_action(
        db,
        user_id=actor_id,
        action="wallet.verified" if is_verified else "wallet.unverified",
        target_type="wallet",
        target_id=str(wallet.id),
        details={"address": wallet.address},
    )
    db.commit()
    db.refresh(wallet)
    return wallet


def delete_wallet(db: Session, *, investor: Investor, wallet_id: int) -> None:
    wallet = get_wallet(db, wallet_id, investor=investor)
    in_use = db.scalar(select(Investment.id).where(Investment.wallet_id == wallet.id).limit(1))
    if in_use:
        raise ConflictError("Wallet has investments and cannot be removed")
    db.delete(wallet)
    db.commit()


def _mark_verified(investor: Investor, method: str) -> None:
    investor.is_verified = True
    investor.verified_at = datetime.now(timezone.utc)
    investor.verification_method = method


def _profile_fields(data: dict[str, Any]) -> dict[str, Any]:
    fields = dict(data)
    if "vat_number" in fields:
        fields["enc_vat_number"] = encrypt_value(fields.pop("vat_number"))
    if "phone_number" in fields:
        fields["enc_phone_number"] = encrypt_value(normalize_phone(fields.pop("phone_number")))
    return fields
