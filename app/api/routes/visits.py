from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.schemas.analytics import VisitRecorded
from app.services import visit_service

router = APIRouter(prefix="/properties", tags=["analytics"])


@router.post("/{property_id}/visits", response_model=VisitRecorded)
def record_visit(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser | None = Depends(deps.get_optional_user),
    context: deps.RequestContext = Depends(deps.get_request_context),
):
    visit = visit_service.record_visit(
        db,
        property_id,
        user_id=current_user.id if current_user else None,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        referrer=context.referrer,
    )
    return VisitRecorded(recorded=visit is not None)
