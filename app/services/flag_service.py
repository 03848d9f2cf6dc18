"""Feature flags backed by the ``feature_flags`` table with a per-process cache."""

from __future__ import annotations

import logging
import threading

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.domain import FeatureFlag

logger = logging.getLogger(__name__)

_cache: dict[str, bool] | None = None
_lock = threading.Lock()


def _load(db: Session) -> dict[str, bool]:
    global _cache
    with _lock:
        if _cache is None:
            rows = db.execute(select(FeatureFlag.key, FeatureFlag.enabled)).all()
            _cache = {key: bool(enabled) for key, enabled in rows}
        return _cache


def get_flag(db: Session, key: str) -> bool:
    return _load(db).get(key, False)


def flag_map(db: Session) -> dict[str, bool]:
    return dict(_load(db))


def list_flags(db: Session) -> list[FeatureFlag]:
    return list(db.scalars(select(FeatureFlag).order_by(FeatureFlag.key)).all())


def update_flag(
    db: Session,
    key: str,
    *,
    enabled: bool,
    description: str | None = None,
    actor: str | None = None,
) -> FeatureFlag:
    flag = db.scalar(select(FeatureFlag).where(FeatureFlag.key == key))
    if flag is None:
        flag = FeatureFlag(key=key, created_by=actor)
        db.add(flag)
    flag.enabled = enabled
    if description is not None:
        flag.description = description
    flag.updated_by = actor
    db.commit()
    db.refresh(flag)
    clear_cache()
    logger.info("Feature flag %s set to %s by %s", key, enabled, actor)
    return flag


def clear_cache() -> None:
    global _cache
    with _lock:
        _cache = None
