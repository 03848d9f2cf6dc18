from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.base import as_utc
from app.models.domain import Property, Visit
from app.models.enums import PropertyStatus
from app.services.property_service import get_property


def daily_series(timestamps: Iterable[datetime], *, start: date, days: int) -> dict[str, int]:
    """Zero-filled per-day counts keyed ``YYYY-MM-DD``."""
    series = {(start + timedelta(days=offset)).isoformat(): 0 for offset in range(days)}
    for ts in timestamps:
        key = as_utc(ts).date().isoformat()
        if key in series:
            series[key] += 1
    return series


def _window(days: int) -> tuple[date, datetime]:
    start_day = datetime.now(timezone.utc).date() - timedelta(days=days - 1)
    return start_day, datetime(start_day.year, start_day.month, start_day.day, tzinfo=timezone.utc)


def property_visit_summary(db: Session, property_id: int, *, days: int = 30) -> dict:
    prop = get_property(db, property_id)
    total = db.scalar(select(func.count(Visit.id)).where(Visit.property_id == prop.id)) or 0

    start_day, since = _window(days)
    rows = db.execute(
        select(Visit.user_id, Visit.ip_address, Visit.created_at).where(
            Visit.property_id == prop.id,
            Visit.created_at >= since,
        )
    ).all()
    visitors = {
        f"user:{user_id}" if user_id is not None else f"ip:{ip}"
        for user_id, ip, _ in rows
        if user_id is not None or ip
    }
    return {
        "property_id": prop.id,
        "total_visits": total,
        "period_visits": len(rows),
        "unique_visitors": len(visitors),
        "days": days,
        "daily": daily_series((row.created_at for row in rows), start=start_day, days=days),
    }


def client_visit_breakdown(db: Session, client_id: int) -> list[dict]:
    rows = db.execute(
        select(Property.id, Property.title, func.count(Visit.id).label("visits"))
        .outerjoin(Visit, Visit.property_id == Property.id)
        .where(Property.client_id == client_id)
        .group_by(Property.id, Property.title)
        .order_by(func.count(Visit.id).desc(), Property.id)
    ).all()
    return [{"property_id": row.id, "title": row.title, "visits": row.visits} for row in rows]


def trending_properties(db: Session, *, limit: int = 10) -> list[dict]:
    since = datetime.now(timezone.utc) - timedelta(days=settings.trending_window_days)
    rows = db.execute(
        select(Visit.property_id, Visit.created_at)
        .join(Property, Property.id == Visit.property_id)
        .where(Property.status == PropertyStatus.APPROVED.value, Visit.created_at >= since)
    ).all()
    counts = Counter(row.property_id for row in rows)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    if not ranked:
        return []
    titles = dict(
        db.execute(select(Property.id, Property.title).where(Property.id.in_([pid for pid, _ in ranked]))).all()
    )
    return [{"property_id": pid, "title": titles.get(pid, ""), "visits": visits} for pid, visits in ranked]
