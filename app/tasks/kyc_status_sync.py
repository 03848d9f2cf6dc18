from __future__ import annotations

import logging

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.kyc_service import sync_pending_records

logger = logging.getLogger(__name__)


def run_kyc_status_sync_job() -> None:
    if not settings.kyc_sync_enabled:
        return

    session = SessionLocal()
    try:
        updated = sync_pending_records(session, batch_size=settings.kyc_sync_batch_size)
        if updated:
            logger.info("KYC sync updated %s records", updated)
    except Exception:  # noqa: BLE001
        logger.exception("KYC status sync failed")
    finally:
        session.close()
