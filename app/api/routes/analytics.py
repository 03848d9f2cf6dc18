from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import ForbiddenError
from app.core.roles import ADMIN_ROLES, CLIENT_ROLES
from app.db.session import get_db
from app.schemas.analytics import PropertyVisitCount, PropertyVisitSummary, TrendingParams, VisitSummaryParams
from app.services import client_service, property_service, visit_analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/properties/{property_id}/visits", response_model=PropertyVisitSummary)
def property_visits(
    property_id: int,
    params: VisitSummaryParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    prop = property_service.get_property(db, property_id)
    if not current_user.is_admin and prop.client.user_id != current_user.id:
        raise ForbiddenError("Only the owner can view visit analytics for this property")
    return visit_analytics_service.property_visit_summary(db, prop.id, days=params.days)


@router.get("/clients/me/visits", response_model=list[PropertyVisitCount])
def my_client_visits(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(CLIENT_ROLES)),
):
    client = client_service.get_client_by_user(db, current_user.id)
    return visit_analytics_service.client_visit_breakdown(db, client.id)


@router.get("/clients/{client_id}/visits", response_model=list[PropertyVisitCount])
def client_visits(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    client = client_service.get_client(db, client_id)
    return visit_analytics_service.client_visit_breakdown(db, client.id)


@router.get("/trending", response_model=list[PropertyVisitCount])
def trending(params: TrendingParams = Depends(), db: Session = Depends(get_db)):
    return visit_analytics_service.trending_properties(db, limit=params.limit)
