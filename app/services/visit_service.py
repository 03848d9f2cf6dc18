from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.domain import Visit
from app.services.property_service import get_property

logger = logging.getLogger(__name__)


def find_recent_visit(
    db: Session,
    property_id: int,
    *,
    user_id: int | None,
    ip_address: str | None,
) -> Visit | None:
    """Latest visit by the same visitor inside the rate-limit window."""
    if user_id is None and not ip_address:
        return None
    since = datetime.now(timezone.utc) - timedelta(minutes=settings.visit_rate_limit_minutes)
    stmt = select(Visit).where(Visit.property_id == property_id, Visit.created_at >= since)
    if user_id is not None:
        stmt = stmt.where(Visit.user_id == user_id)
    else:
        stmt = stmt.where(Visit.ip_address == ip_address)
    return db.scalar(stmt.order_by(Visit.created_at.desc()).limit(1))


def record_visit(
    db: Session,
    property_id: int,
    *,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referrer: str | None = None,
) -> Visit | None:
    prop = get_property(db, property_id)
    if find_recent_visit(db, prop.id, user_id=user_id, ip_address=ip_address):
        logger.debug("Visit to property %s rate limited (user=%s ip=%s)", prop.id, user_id, ip_address)
        return None

    visit = Visit(
        property_id=prop.id,
        user_id=user_id,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255] or None,
        referrer=(referrer or "")[:500] or None,
    )
    db.add(visit)
    db.commit()
    db.refresh(visit)
    return visit
