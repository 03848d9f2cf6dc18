from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, UnauthorizedError
from app.core.security import (
    IssuedToken,
    TokenDecodeError,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from app.models.base import as_utc
from app.models.domain import AuthSession, User
from app.models.enums import AuthProvider, UserStatus
from app.services.oauth_service import OAuthProfile
from app.services.user_service import get_user_by_email

logger = logging.getLogger(__name__)


@dataclass
class LoginTokens:
    access: IssuedToken
    refresh: IssuedToken


def register_user(db: Session, *, email: str, password: str, full_name: str) -> User:
    if get_user_by_email(db, email):
        raise ConflictError("Email is already registered")
    user = User(
        email=email.lower(),
        password_hash=hash_password(password),
        full_name=full_name,
        auth_provider=AuthProvider.LOCAL.value,
        status=UserStatus.ACTIVE.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if not user:
        return None
    if user.status != UserStatus.ACTIVE.value:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def issue_login_tokens(
    db: Session,
    *,
    user: User,
    ip_address: str | None,
    user_agent: str | None,
) -> LoginTokens:
    tokens = _mint(user)
    session = AuthSession(
        user_id=user.id,
        jwt_id=tokens.access.jti,
        refresh_jti=tokens.refresh.jti,
        expires_at=tokens.access.expires_at,
        refresh_expires_at=tokens.refresh.expires_at,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255] or None,
    )
    user.last_login_at = datetime.now(timezone.utc)
    db.add(session)
    db.commit()
    db.refresh(user)
    return tokens


def refresh_tokens(db: Session, refresh_token: str) -> tuple[User, LoginTokens]:
    try:
        payload = decode_refresh_token(refresh_token)
    except TokenDecodeError as exc:
        raise UnauthorizedError("Invalid refresh token") from exc

    session = db.scalar(select(AuthSession).where(AuthSession.refresh_jti == payload.jti))
    if not session or as_utc(session.refresh_expires_at) <= datetime.now(timezone.utc):
        raise UnauthorizedError("Refresh token has been revoked or expired")
    user = db.get(User, session.user_id)
    if not user or user.status != UserStatus.ACTIVE.value or str(user.id) != payload.subject:
        raise UnauthorizedError("Account is not active")

    # Rotate both tokens so the presented refresh token cannot be replayed
    tokens = _mint(user)
    session.jwt_id = tokens.access.jti
    session.refresh_jti = tokens.refresh.jti
    session.expires_at = tokens.access.expires_at
    session.refresh_expires_at = tokens.refresh.expires_at
    db.commit()
    return user, tokens


def revoke_session(db: Session, jwt_id: str) -> None:
    session = db.scalar(select(AuthSession).where(AuthSession.jwt_id == jwt_id))
    if session:
        db.delete(session)
        db.commit()


def revoke_user_sessions(db: Session, user_id: int) -> int:
    result = db.execute(delete(AuthSession).where(AuthSession.user_id == user_id))
    return result.rowcount or 0


def purge_expired_sessions(db: Session) -> int:
    now = datetime.now(timezone.utc)
    result = db.execute(delete(AuthSession).where(AuthSession.refresh_expires_at <= now))
    db.commit()
    return result.rowcount or 0


def login_with_oauth_profile(db: Session, profile: OAuthProfile) -> User:
    user = db.scalar(select(User).where(User.provider_id == profile.provider_id))
    if user is None:
        user = get_user_by_email(db, profile.email)
        if user is not None:
            # Link an existing email account to this provider
            user.provider_id = profile.provider_id
            if not user.avatar_url:
                user.avatar_url = profile.avatar_url
        else:
            user = User(
                email=profile.email,
                full_name=profile.full_name,
                auth_provider=profile.auth_provider,
                provider_id=profile.provider_id,
                avatar_url=profile.avatar_url,
                status=UserStatus.ACTIVE.value,
            )
            db.add(user)
        db.commit()
        db.refresh(user)
    if user.status != UserStatus.ACTIVE.value:
        raise UnauthorizedError("Account is not active")
    return user


def _mint(user: User) -> LoginTokens:
    subject = str(user.id)
    return LoginTokens(access=create_access_token(subject), refresh=create_refresh_token(subject))
