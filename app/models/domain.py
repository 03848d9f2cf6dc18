from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    LargeBinary,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import AuditMixin, Base, IdType, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    auth_provider: Mapped[str] = mapped_column(String(20), nullable=False, default="LOCAL")
    provider_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    roles: Mapped[list["Role"]] = relationship(secondary="user_roles", lazy="selectin")


class Role(TimestampMixin, Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role"),)

    user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )


class AuthSession(TimestampMixin, Base):
    __tablename__ = "auth_sessions"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    jwt_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    refresh_jti: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    refresh_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(50))
    user_agent: Mapped[str | None] = mapped_column(String(255))


class Client(TimestampMixin, Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    company_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(20))
    country: Mapped[str] = mapped_column(String(50), nullable=False)
    legal_entity_number: Mapped[str | None] = mapped_column(String(100))
    wallet_address: Mapped[str | None] = mapped_column(String(42))
    logo_url: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    user: Mapped[User] = relationship(lazy="joined")


class Investor(TimestampMixin, Base):
    __tablename__ = "investors"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    nationality: Mapped[str | None] = mapped_column(String(56))
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verification_method: Mapped[str | None] = mapped_column(String(50))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    institution_name: Mapped[str | None] = mapped_column(String(150))
    enc_vat_number: Mapped[bytes | None] = mapped_column(LargeBinary)
    enc_phone_number: Mapped[bytes | None] = mapped_column(LargeBinary)
    address: Mapped[str | None] = mapped_column(String(200))
    city: Mapped[str | None] = mapped_column(String(56))
    country: Mapped[str | None] = mapped_column(String(56), index=True)
    postal_code: Mapped[str | None] = mapped_column(String(20))

    user: Mapped[User] = relationship(lazy="joined")
    wallets: Mapped[list["Wallet"]] = relationship(
        back_populates="investor",
        lazy="selectin",
        order_by="Wallet.id",
    )


class Wallet(TimestampMixin, Base):
    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    investor_id: Mapped[int] = mapped_column(ForeignKey("investors.id", ondelete="CASCADE"), index=True)
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    blockchain: Mapped[str] = mapped_column(String(20), nullable=False, default="SEPOLIA")
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    investor: Mapped[Investor] = relationship(back_populates="wallets")


class Property(TimestampMixin, AuditMixin, Base):
    __tablename__ = "properties"
    __table_args__ = (
        Index("ix_property_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    country: Mapped[str] = mapped_column(String(56), nullable=False)
    city: Mapped[str] = mapped_column(String(56), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)
    image_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    total_price: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    token_price: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    irr: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    apr: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    value_growth: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    min_investment: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    tokens_available_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    token_symbol: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_notes: Mapped[str | None] = mapped_column(String(1000))
    reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    client: Mapped[Client] = relationship(lazy="joined")


class Token(TimestampMixin, AuditMixin, Base):
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    decimals: Mapped[int] = mapped_column(Integer, nullable=False, default=18)
    total_supply: Mapped[int] = mapped_column(IdType, nullable=False)
    contract_address: Mapped[str | None] = mapped_column(String(42))
    blockchain: Mapped[str] = mapped_column(String(20), nullable=False, default="SEPOLIA")
    is_minted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_transferable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    property: Mapped[Property] = relationship(lazy="joined")


class Investment(TimestampMixin, Base):
    __tablename__ = "investments"
    __table_args__ = (
        Index("ix_investment_investor_status", "investor_id", "status"),
        Index("ix_investment_token_status", "token_id", "status"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    investor_id: Mapped[int] = mapped_column(ForeignKey("investors.id"), nullable=False)
    token_id: Mapped[int] = mapped_column(ForeignKey("tokens.id"), nullable=False)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id"), nullable=False, index=True)
    wallet_id: Mapped[int | None] = mapped_column(ForeignKey("wallets.id"))
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    price_per_token: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    token_quantity: Mapped[Decimal] = mapped_column(Numeric(30, 8), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="USD")
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False, default="CRYPTO")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    tx_hash: Mapped[str | None] = mapped_column(String(66), unique=True)
    ip_address: Mapped[str | None] = mapped_column(String(50))
    user_agent: Mapped[str | None] = mapped_column(String(255))


class KycRecord(TimestampMixin, Base):
    __tablename__ = "kyc_records"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING", index=True)
    document_type: Mapped[str | None] = mapped_column(String(30))
    enc_document_number: Mapped[bytes | None] = mapped_column(LargeBinary)
    document_number_hash: Mapped[str | None] = mapped_column(String(64), index=True)
    nationality: Mapped[str | None] = mapped_column(String(56))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    provider: Mapped[str | None] = mapped_column(String(30))
    reference_id: Mapped[str | None] = mapped_column(String(120), unique=True)
    provider_data: Mapped[dict | None] = mapped_column(JSON)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(String(500))


class Document(TimestampMixin, Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    property_id: Mapped[int | None] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    path: Mapped[str] = mapped_column(String(500), nullable=False)


class Notification(TimestampMixin, Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "is_read"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(40), nullable=False, default="SYSTEM")
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payload: Mapped[dict | None] = mapped_column(JSON)


class Visit(TimestampMixin, Base):
    __tablename__ = "visits"
    __table_args__ = (
        Index("ix_visit_property_created", "property_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    ip_address: Mapped[str | None] = mapped_column(String(50))
    user_agent: Mapped[str | None] = mapped_column(String(255))
    referrer: Mapped[str | None] = mapped_column(String(500))


class AuditLogEntry(TimestampMixin, Base):
    __tablename__ = "audit_log_entries"
    __table_args__ = (
        Index("ix_audit_target", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    target_type: Mapped[str | None] = mapped_column(String(50))
    target_id: Mapped[str | None] = mapped_column(String(50))
    ip_address: Mapped[str | None] = mapped_column(String(50))
    user_agent: Mapped[str | None] = mapped_column(String(255))
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON)

    user: Mapped[User | None] = relationship(lazy="joined")


class FeatureFlag(TimestampMixin, AuditMixin, Base):
    __tablename__ = "feature_flags"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(String(255))
