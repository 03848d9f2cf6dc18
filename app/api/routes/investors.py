from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.common import Page
from app.schemas.investors import (
    EligibilityRead,
    InvestorApply,
    InvestorRead,
    InvestorUpdate,
    VerificationUpdate,
    WalletCreate,
    WalletRead,
    WalletVerificationUpdate,
)
from app.services import investor_service

router = APIRouter(prefix="/investors", tags=["investors"])


@router.get("/eligibility", response_model=EligibilityRead)
def eligibility(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    allowed, reason = investor_service.can_apply(db, current_user.user)
    return EligibilityRead(can_apply=allowed, reason=reason)


@router.post("/apply", response_model=InvestorRead, status_code=status.HTTP_201_CREATED)
def apply(
    payload: InvestorApply,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.apply_as_investor(db, user=current_user.user, payload=payload)
    return InvestorRead.from_model(investor)


@router.get("/me", response_model=InvestorRead)
def read_me(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return InvestorRead.from_model(investor_service.get_investor_by_user(db, current_user.id))


@router.patch("/me", response_model=InvestorRead)
def update_me(
    payload: InvestorUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    investor = investor_service.update_investor(db, investor=investor, payload=payload)
    return InvestorRead.from_model(investor)


@router.get("/me/wallets", response_model=list[WalletRead])
def list_my_wallets(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    return [WalletRead.model_validate(wallet) for wallet in investor_service.list_wallets(db, investor)]


@router.post("/me/wallets", response_model=WalletRead, status_code=status.HTTP_201_CREATED)
def add_my_wallet(
    payload: WalletCreate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    wallet = investor_service.add_wallet(db, investor=investor, payload=payload)
    return WalletRead.model_validate(wallet)


@router.delete("/me/wallets/{wallet_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_wallet(
    wallet_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    investor_service.delete_wallet(db, investor=investor, wallet_id=wallet_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/wallets/{wallet_id}/verification", response_model=WalletRead)
def verify_wallet(
    wallet_id: int,
    payload: WalletVerificationUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    wallet = investor_service.update_wallet_verification(
        db,
        wallet_id,
        is_verified=payload.is_verified,
        actor_id=current_user.id,
    )
    return WalletRead.model_validate(wallet)


@router.get("", response_model=Page[InvestorRead])
def list_investors(
    is_verified: bool | None = Query(default=None),
    country: str | None = Query(default=None, max_length=56),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, meta = investor_service.list_investors(db, params=params, is_verified=is_verified, country=country)
    return Page[InvestorRead](items=[InvestorRead.from_model(item) for item in items], meta=meta)


@router.get("/{investor_id}", response_model=InvestorRead)
def read_investor(
    investor_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    return InvestorRead.from_model(investor_service.get_investor(db, investor_id))


@router.patch("/{investor_id}/verification", response_model=InvestorRead)
def update_verification(
    investor_id: int,
    payload: VerificationUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    investor = investor_service.update_verification(
        db,
        investor_id,
        is_verified=payload.is_verified,
        method=payload.verification_method,
        actor_id=current_user.id,
    )
    return InvestorRead.from_model(investor)
