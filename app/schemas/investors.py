from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from app.core.chain import Blockchain
from app.core.crypto import decrypt_value
from app.core.phone import mask_phone
from app.models.domain import Investor
from app.schemas.common import PhoneNumber, WalletAddress


class InvestorApply(BaseModel):
    nationality: str | None = Field(default=None, min_length=2, max_length=56)
    date_of_birth: date | None = None
    institution_name: str | None = Field(default=None, max_length=150)
    vat_number: str | None = Field(default=None, min_length=4, max_length=30)
    phone_number: PhoneNumber | None = None
    address: str | None = Field(default=None, min_length=5, max_length=200)
    city: str | None = Field(default=None, min_length=1, max_length=56)
    country: str | None = Field(default=None, min_length=2, max_length=56)
    postal_code: str | None = Field(default=None, max_length=20)


class InvestorUpdate(InvestorApply):
    pass


class VerificationUpdate(BaseModel):
    is_verified: bool
    verification_method: str | None = Field(default=None, max_length=50)


class WalletCreate(BaseModel):
    address: WalletAddress
    blockchain: Blockchain = Blockchain.SEPOLIA


class WalletVerificationUpdate(BaseModel):
    is_verified: bool


class WalletRead(BaseModel):
    id: int
    investor_id: int
    address: str
    blockchain: str
    is_verified: bool
    verified_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EligibilityRead(BaseModel):
    can_apply: bool
    reason: str | None = None


class InvestorRead(BaseModel):
    id: int
    user_id: int
    nationality: str | None = None
    is_verified: bool
    verified_at: datetime | None = None
    verification_method: str | None = None
    date_of_birth: date | None = None
    institution_name: str | None = None
    vat_number: str | None = None
    phone_number: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    postal_code: str | None = None
    wallets: list[WalletRead] = []
    created_at: datetime

    @classmethod
    def from_model(cls, investor: Investor) -> "InvestorRead":
        vat_number = decrypt_value(investor.enc_vat_number)
        return cls(
            id=investor.id,
            user_id=investor.user_id,
            nationality=investor.nationality,
            is_verified=investor.is_verified,
            verified_at=investor.verified_at,
            verification_method=investor.verification_method,
            date_of_birth=investor.date_of_birth,
            institution_name=investor.institution_name,
            vat_number=f"****{vat_number[-4:]}" if vat_number else None,
            phone_number=mask_phone(decrypt_value(investor.enc_phone_number)),
            address=investor.address,
            city=investor.city,
            country=investor.country,
            postal_code=investor.postal_code,
            wallets=[WalletRead.model_validate(wallet) for wallet in investor.wallets],
            created_at=investor.created_at,
        )
