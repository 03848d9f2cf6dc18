from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.crypto import encrypt_value, fingerprint
from app.core.exceptions import BusinessRuleError, ConflictError, NotFoundError, UnauthorizedError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.models.domain import KycRecord, User
from app.models.enums import KycStatus, NotificationType
from app.schemas.kyc import KycSubmit
from app.services import investor_service, kyc_provider_service, notification_service
from app.services.audit_service import log_action
from app.services.kyc_provider_service import VerificationSession

logger = logging.getLogger(__name__)


def get_current_user_kyc(db: Session, user_id: int) -> KycRecord | None:
    return db.scalar(select(KycRecord).where(KycRecord.user_id == user_id))


def get_kyc_by_user(db: Session, user_id: int) -> KycRecord:
    record = get_current_user_kyc(db, user_id)
    if not record:
        raise NotFoundError("KYC record for user", user_id)
    return record


def submit_kyc(db: Session, *, user: User, payload: KycSubmit) -> KycRecord:
    doc_hash = fingerprint(payload.document_number)
    owner = db.scalar(select(KycRecord.user_id).where(KycRecord.document_number_hash == doc_hash))
    if owner is not None and owner != user.id:
        raise ConflictError("This document is already registered to another account")

    record = get_current_user_kyc(db, user.id)
    if record is None:
        record = KycRecord(user_id=user.id)
        db.add(record)
    elif record.status == KycStatus.VERIFIED.value:
        raise ConflictError("KYC is already verified")

    record.status = KycStatus.PENDING.value
    record.document_type = payload.document_type.value
    record.enc_document_number = encrypt_value(payload.document_number)
    record.document_number_hash = doc_hash
    record.nationality = payload.nationality
    record.date_of_birth = payload.date_of_birth
    record.submitted_at = datetime.now(timezone.utc)
    record.verified_at = None
    record.rejected_at = None
    record.rejection_reason = None
    db.flush()
    log_action(db, user_id=user.id, action="kyc.submit", target_type="kyc", target_id=str(record.id))
    db.commit()
    db.refresh(record)
    return record


def _apply_status(
    db: Session,
    record: KycRecord,
    status: KycStatus,
    *,
    reason: str | None = None,
    provider_data: dict[str, Any] | None = None,
) -> bool:
    """Move a record to ``status``. Returns True when the status changed."""
    now = datetime.now(timezone.utc)
    changed = record.status != status.value
    record.status = status.value
    if provider_data is not None:
        record.provider_data = provider_data

    if status == KycStatus.VERIFIED:
        record.verified_at = now
        record.rejected_at = None
        record.rejection_reason = None
        investor_service.mark_verified_by_kyc(db, record.user_id)
    elif status == KycStatus.REJECTED:
        record.rejected_at = now
        record.verified_at = None
        record.rejection_reason = reason

    if changed and status == KycStatus.VERIFIED:
        notification_service.send_notification(
            db,
            user_id=record.user_id,
            type=NotificationType.KYC_APPROVED,
            title="Identity verified",
            message="Your KYC verification was approved. You can now invest.",
            payload={"kyc_id": record.id},
            commit=False,
        )
    elif changed and status == KycStatus.REJECTED:
        notification_service.send_notification(
            db,
            user_id=record.user_id,
            type=NotificationType.KYC_REJECTED,
            title="Identity verification rejected",
            message=f"Your KYC verification was rejected: {reason}",
            payload={"kyc_id": record.id, "reason": reason},
            commit=False,
        )
    return changed


def update_kyc_status(
    db: Session,
    user_id: int,
    *,
    status: KycStatus,
    reason: str | None,
    actor_id: int,
) -> KycRecord:
    record = get_kyc_by_user(db, user_id)
    if status == KycStatus.REJECTED and not (reason or "").strip():
        raise BusinessRuleError("A rejection reason is required")
    previous = record.status
    _apply_status(db, record, status, reason=reason)
    log_action(
        db,
        user_id=actor_id,
        action="kyc.status_update",
        target_type="kyc",
        target_id=str(record.id),
        details={"from": previous, "to": status.value, "reason": reason},
    )
    db.commit()
    db.refresh(record)
    return record


def list_kyc_records(
    db: Session,
    *,
    params: PaginationParams,
    status: KycStatus | None = None,
) -> tuple[list[KycRecord], PageMeta]:
    stmt = select(KycRecord).order_by(KycRecord.updated_at.desc(), KycRecord.id.desc())
    if status:
        stmt = stmt.where(KycRecord.status == status.value)
    return paginate(db, stmt, params)


def init_verification(
    db: Session,
    *,
    user_id: int,
    provider: str,
    redirect_url: str | None = None,
) -> VerificationSession:
    record = get_current_user_kyc(db, user_id)
    if record and record.status == KycStatus.VERIFIED.value:
        raise ConflictError("KYC is already verified")

    session = kyc_provider_service.create_verification_session(provider, user_id, redirect_url)
    if record is None:
        record = KycRecord(user_id=user_id)
        db.add(record)
    record.status = KycStatus.PENDING.value
    record.provider = session.provider
    record.reference_id = session.reference_id
    record.provider_data = {}
    record.verified_at = None
    record.rejected_at = None
    record.rejection_reason = None
    db.commit()
    logger.info("KYC verification %s started for user %s", session.reference_id, user_id)
    return session


def _sync_record(db: Session, record: KycRecord) -> bool:
    result = kyc_provider_service.get_verification_status(record.reference_id)
    return _apply_status(
        db,
        record,
        result.status,
        reason=result.rejection_reason,
        provider_data=result.provider_data,
    )


def sync_kyc_status(db: Session, user_id: int) -> KycRecord:
    record = get_kyc_by_user(db, user_id)
    if not record.provider or not record.reference_id:
        raise BusinessRuleError("No provider verification has been started")
    _sync_record(db, record)
    db.commit()
    db.refresh(record)
    return record


def sync_pending_records(db: Session, *, batch_size: int) -> int:
    """Poll the provider for pending records. Returns the number that changed status."""
    records = db.scalars(
        select(KycRecord)
        .where(
            KycRecord.status == KycStatus.PENDING.value,
            KycRecord.reference_id.is_not(None),
        )
        .order_by(KycRecord.updated_at)
        .limit(batch_size)
    ).all()
    updated = 0
    for record in records:
        record_id = record.id
        try:
            if _sync_record(db, record):
                updated += 1
            db.commit()
        except Exception:  # noqa: BLE001
            db.rollback()
            logger.exception("KYC sync failed for record %s", record_id)
    return updated


def process_webhook(
    db: Session,
    *,
    provider: str,
    raw_body: bytes,
    signature: str | None,
) -> tuple[KycRecord | None, str | None]:
    provider = kyc_provider_service.normalize_provider(provider)
    if not signature:
        logger.warning("Rejected %s webhook without signature", provider)
        raise UnauthorizedError("Missing signature header")
    if not kyc_provider_service.verify_webhook_signature(raw_body, signature):
        logger.warning("Rejected %s webhook with invalid signature", provider)
        raise UnauthorizedError("Invalid signature")

    try:
        payload = json.loads(raw_body)
    except ValueError as exc:
        raise BusinessRuleError("Webhook body is not valid JSON") from exc
    if not isinstance(payload, dict) or not payload.get("referenceId"):
        raise BusinessRuleError("Webhook body must include referenceId")

    reference_id = str(payload["referenceId"])
    record = db.scalar(select(KycRecord).where(KycRecord.reference_id == reference_id))
    if not record:
        logger.warning("KYC webhook for unknown reference %s ignored", reference_id)
        return None, reference_id

    status = kyc_provider_service.map_provider_status(payload.get("status"))
    reason = payload.get("rejectReason")
    if status == KycStatus.REJECTED and not reason:
        reason = "Rejected by provider"
    _apply_status(db, record, status, reason=reason, provider_data=payload.get("metadata") or {})
    log_action(
        db,
        user_id=None,
        action="kyc.webhook",
        target_type="kyc",
        target_id=str(record.id),
        details={"provider": provider, "status": status.value},
    )
    db.commit()
    db.refresh(record)
    return record, reference_id
