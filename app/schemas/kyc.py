from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from app.models.enums import KycDocumentType, KycStatus

NOT_SUBMITTED = "NOT_SUBMITTED"


class KycSubmit(BaseModel):
    document_type: KycDocumentType
    document_number: str = Field(..., min_length=4, max_length=50)
    nationality: str = Field(..., min_length=2, max_length=56)
    date_of_birth: date


class KycStatusUpdate(BaseModel):
    status: KycStatus
    rejection_reason: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def reason_for_rejection(self) -> "KycStatusUpdate":
        if self.status == KycStatus.REJECTED and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting KYC")
        return self


class KycFilters(BaseModel):
    status: KycStatus | None = None


class VerificationRequest(BaseModel):
    provider: str = Field(default="sumsub", max_length=30)
    redirect_url: str | None = Field(default=None, max_length=500)


class VerificationSessionRead(BaseModel):
    provider: str
    reference_id: str
    redirect_url: str
    expires_at: datetime


class KycRead(BaseModel):
    id: int | None = None
    user_id: int | None = None
    status: str
    document_type: str | None = None
    nationality: str | None = None
    date_of_birth: date | None = None
    provider: str | None = None
    reference_id: str | None = None
    submitted_at: datetime | None = None
    verified_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def not_submitted(cls) -> "KycRead":
        return cls(status=NOT_SUBMITTED)


class KycAdminRead(KycRead):
    provider_data: dict[str, Any] | None = None


class WebhookAck(BaseModel):
    status: str
    reference_id: str | None = None
