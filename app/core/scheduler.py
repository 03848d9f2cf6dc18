from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.tasks.kyc_status_sync import run_kyc_status_sync_job
from app.tasks.session_cleanup import run_session_cleanup_job

logger = logging.getLogger(__name__)
_scheduler: BackgroundScheduler | None = None


def start_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        return
    if not settings.scheduler_enabled:
        logger.info("Background scheduler disabled (SCHEDULER_ENABLED=false)")
        return

    _scheduler = BackgroundScheduler(timezone="UTC")
    _scheduler.add_job(
        run_session_cleanup_job,
        IntervalTrigger(minutes=settings.session_cleanup_interval_minutes),
        id="session_cleanup",
        max_instances=1,
        replace_existing=True,
        coalesce=True,
    )
    if settings.kyc_sync_enabled:
        _scheduler.add_job(
            run_kyc_status_sync_job,
            IntervalTrigger(seconds=settings.kyc_sync_interval_seconds),
            id="kyc_status_sync",
            max_instances=1,
            replace_existing=True,
            coalesce=True,
        )

    _scheduler.start()
    logger.info("Background scheduler started")


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
        _scheduler = None
