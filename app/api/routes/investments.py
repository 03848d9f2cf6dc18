from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.common import Page
from app.schemas.investments import InvestmentCreate, InvestmentFilters, InvestmentRead, InvestmentStatusUpdate
from app.services import investment_service, investor_service

router = APIRouter(prefix="/investments", tags=["investments"])
admin_router = APIRouter(prefix="/admin/investments", tags=["admin"])


@router.post("", response_model=InvestmentRead, status_code=status.HTTP_201_CREATED)
def create_investment(
    payload: InvestmentCreate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
    context: deps.RequestContext = Depends(deps.get_request_context),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    investment = investment_service.create_investment(
        db,
        investor=investor,
        payload=payload,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )
    return InvestmentRead.model_validate(investment)


@router.get("/me", response_model=Page[InvestmentRead])
def list_my_investments(
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    items, meta = investment_service.list_my_investments(db, investor=investor, params=params)
    return Page[InvestmentRead](items=[InvestmentRead.model_validate(item) for item in items], meta=meta)


@router.get("/{investment_id}", response_model=InvestmentRead)
def read_investment(
    investment_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = None if current_user.is_admin else investor_service.find_investor_by_user(db, current_user.id)
    investment = investment_service.get_investment_for(
        db, investment_id, investor=investor, is_admin=current_user.is_admin
    )
    return InvestmentRead.model_validate(investment)


@router.post("/{investment_id}/cancel", response_model=InvestmentRead)
def cancel_investment(
    investment_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    investor = investor_service.get_investor_by_user(db, current_user.id)
    investment = investment_service.cancel_investment(db, investor=investor, investment_id=investment_id)
    return InvestmentRead.model_validate(investment)


@admin_router.get("", response_model=Page[InvestmentRead])
def list_investments(
    filters: InvestmentFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, meta = investment_service.list_investments(db, filters=filters, params=params)
    return Page[InvestmentRead](items=[InvestmentRead.model_validate(item) for item in items], meta=meta)


@admin_router.patch("/{investment_id}/status", response_model=InvestmentRead)
def update_investment_status(
    investment_id: int,
    payload: InvestmentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    investment = investment_service.update_investment_status(
        db,
        investment_id,
        status=payload.status,
        tx_hash=payload.tx_hash,
        actor_id=current_user.id,
    )
    return InvestmentRead.model_validate(investment)
