from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime
    jti: str


@dataclass
class TokenPayload:
    subject: str
    expires_at: datetime
    issued_at: datetime
    jti: str
    token_type: str


class TokenDecodeError(RuntimeError):
    pass


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> IssuedToken:
    return _encode(
        subject,
        token_type=ACCESS_TOKEN_TYPE,
        lifetime=expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(subject: str, expires_delta: timedelta | None = None) -> IssuedToken:
    return _encode(
        subject,
        token_type=REFRESH_TOKEN_TYPE,
        lifetime=expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def decode_access_token(token: str) -> TokenPayload:
    return _decode(token, expected_type=ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> TokenPayload:
    return _decode(token, expected_type=REFRESH_TOKEN_TYPE)


def _encode(subject: str, *, token_type: str, lifetime: timedelta) -> IssuedToken:
    now = datetime.now(timezone.utc)
    expires = now + lifetime
    jti = uuid4().hex
    payload: dict[str, Any] = {
        "sub": subject,
        "exp": int(expires.timestamp()),
        "iat": int(now.timestamp()),
        "jti": jti,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "type": token_type,
    }
    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return IssuedToken(token=token, expires_at=expires, jti=jti)


def _decode(token: str, *, expected_type: str) -> TokenPayload:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:  # noqa: PERF203 - explicit conversion needed
        raise TokenDecodeError("Token verification failed") from exc

    subject = payload.get("sub")
    jti = payload.get("jti")
    exp = payload.get("exp")
    iat = payload.get("iat")
    token_type = payload.get("type")
    if not subject or not jti or exp is None or iat is None:
        raise TokenDecodeError("Token payload is malformed")
    if token_type != expected_type:
        raise TokenDecodeError(f"Expected a {expected_type} token")

    expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc)
    issued_at = datetime.fromtimestamp(int(iat), tz=timezone.utc)
    return TokenPayload(
        subject=str(subject),
        expires_at=expires_at,
        issued_at=issued_at,
        jti=str(jti),
        token_type=token_type,
    )
