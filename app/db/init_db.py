from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.roles import ROLE_NAMES
from app.db.session import SessionLocal, engine
from app.models import Base
from app.models.domain import Role

logger = logging.getLogger(__name__)


def seed_roles(db: Session) -> None:
    existing = set(db.scalars(select(Role.code)).all())
    for code, name in ROLE_NAMES.items():
        if code not in existing:
            db.add(Role(code=code, name=name))
    db.commit()


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_roles(session)
    finally:
        session.close()
    logger.info("Database tables ensured and roles seeded")
