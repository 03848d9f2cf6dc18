from __future__ import annotations

import logging
import sys

from app.core.config import settings

NOISY_LOGGERS = ("sqlalchemy.engine", "httpcore", "httpx", "apscheduler", "passlib")


def configure_logging() -> None:
    """Set up process-wide logging for the API and its background jobs."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
