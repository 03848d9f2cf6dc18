from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from app.api import deps
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.schemas.common import Page
from app.schemas.kyc import (
    KycAdminRead,
    KycFilters,
    KycRead,
    KycStatusUpdate,
    KycSubmit,
    VerificationRequest,
    VerificationSessionRead,
    WebhookAck,
)
from app.services import kyc_service

router = APIRouter(prefix="/kyc", tags=["kyc"])
admin_router = APIRouter(prefix="/admin/kyc", tags=["admin"])


@router.get("/me", response_model=KycRead)
def read_my_kyc(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    record = kyc_service.get_current_user_kyc(db, current_user.id)
    if record is None:
        return KycRead.not_submitted()
    return KycRead.model_validate(record)


@router.post("/submit", response_model=KycRead)
def submit_kyc(
    payload: KycSubmit,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return KycRead.model_validate(kyc_service.submit_kyc(db, user=current_user.user, payload=payload))


@router.post("/verification", response_model=VerificationSessionRead)
def start_verification(
    payload: VerificationRequest,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    session = kyc_service.init_verification(
        db,
        user_id=current_user.id,
        provider=payload.provider,
        redirect_url=payload.redirect_url,
    )
    return VerificationSessionRead(
        provider=session.provider,
        reference_id=session.reference_id,
        redirect_url=session.redirect_url,
        expires_at=session.expires_at,
    )


@router.post("/sync", response_model=KycRead)
def sync_my_kyc(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return KycRead.model_validate(kyc_service.sync_kyc_status(db, current_user.id))


@router.post("/webhooks/{provider}", response_model=WebhookAck)
async def provider_webhook(
    provider: str,
    request: Request,
    x_payload_digest: str | None = Header(default=None),
    db: Session = Depends(get_db),
):
    raw_body = await request.body()
    record, reference_id = kyc_service.process_webhook(
        db,
        provider=provider,
        raw_body=raw_body,
        signature=x_payload_digest,
    )
    if record is None:
        return WebhookAck(status="ignored", reference_id=reference_id)
    return WebhookAck(status="processed", reference_id=reference_id)


@admin_router.get("", response_model=Page[KycAdminRead])
def list_kyc_records(
    filters: KycFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, meta = kyc_service.list_kyc_records(db, params=params, status=filters.status)
    return Page[KycAdminRead](items=[KycAdminRead.model_validate(item) for item in items], meta=meta)


@admin_router.get("/{user_id}", response_model=KycAdminRead)
def read_user_kyc(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    return KycAdminRead.model_validate(kyc_service.get_kyc_by_user(db, user_id))


@admin_router.patch("/{user_id}/status", response_model=KycAdminRead)
def update_kyc_status(
    user_id: int,
    payload: KycStatusUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    record = kyc_service.update_kyc_status(
        db,
        user_id,
        status=payload.status,
        reason=payload.rejection_reason,
        actor_id=current_user.id,
    )
    return KycAdminRead.model_validate(record)
