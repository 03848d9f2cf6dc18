from __future__ import annotations

import logging

from app.db.session import SessionLocal
from app.services.auth_service import purge_expired_sessions

logger = logging.getLogger(__name__)


def run_session_cleanup_job() -> None:
    session = SessionLocal()
    try:
        removed = purge_expired_sessions(session)
        if removed:
            logger.info("Removed %s expired auth sessions", removed)
    except Exception:  # noqa: BLE001
        session.rollback()
        logger.exception("Auth session cleanup failed")
    finally:
        session.close()
