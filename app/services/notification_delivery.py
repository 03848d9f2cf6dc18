from __future__ import annotations

import logging
from typing import Any

import httpx
from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.domain import Notification

logger = logging.getLogger(__name__)

_OUTBOX_KEY = "notification_outbox"


def enqueue(db: Session, notification: Notification) -> None:
    """Hold a flushed notification until the session commits; a rollback drops it."""
    if not settings.notification_webhook_url:
        return
    db.info.setdefault(_OUTBOX_KEY, []).append(
        {
            "id": notification.id,
            "user_id": notification.user_id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "payload": notification.payload or {},
        }
    )


@event.listens_for(Session, "after_commit")
def _deliver_outbox(session: Session) -> None:
    for body in session.info.pop(_OUTBOX_KEY, []):
        deliver(body)


@event.listens_for(Session, "after_rollback")
def _discard_outbox(session: Session) -> None:
    dropped = session.info.pop(_OUTBOX_KEY, [])
    if dropped:
        logger.info("Dropped %s undelivered notifications after rollback", len(dropped))


def deliver(body: dict[str, Any]) -> bool:
    """Push a committed notification to the outbound webhook channel, if configured."""
    if not settings.notification_webhook_url:
        return False
    try:
        with httpx.Client(timeout=settings.notification_webhook_timeout) as client:
            response = client.post(settings.notification_webhook_url, json=body)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Notification %s webhook delivery failed: %s", body.get("id"), exc)
        return False
    return True
