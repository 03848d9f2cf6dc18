from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.roles import RoleCode
from app.core.security import TokenDecodeError, decode_access_token
from app.db.session import get_db
from app.models.base import as_utc
from app.models.domain import AuthSession, User
from app.models.enums import UserStatus

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@dataclass
class AuthenticatedUser:
    user: User
    roles: set[str]
    session: AuthSession
    token_jti: str

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email

    @property
    def is_admin(self) -> bool:
        return RoleCode.ADMIN.value in self.roles

    def has_role(self, role: RoleCode) -> bool:
        return role.value in self.roles


@dataclass
class RequestContext:
    ip_address: str | None
    user_agent: str | None
    referrer: str | None = None


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )


def _resolve_user(token: str, db: Session) -> AuthenticatedUser:
    try:
        payload = decode_access_token(token)
    except TokenDecodeError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc

    session = db.scalar(select(AuthSession).where(AuthSession.jwt_id == payload.jti))
    if not session or as_utc(session.expires_at) <= datetime.now(timezone.utc):
        raise UnauthorizedError("Session has expired or was revoked")

    user = db.get(User, int(payload.subject))
    if not user or user.status != UserStatus.ACTIVE.value:
        raise UnauthorizedError("Account is not active")
    if session.user_id != user.id:
        raise UnauthorizedError()

    role_codes = {role.code for role in (user.roles or [])}
    return AuthenticatedUser(user=user, roles=role_codes, session=session, token_jti=session.jwt_id)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> AuthenticatedUser:
    return _resolve_user(token, db)


def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> AuthenticatedUser | None:
    if not token:
        return None
    return _resolve_user(token, db)


def require_roles(allowed_roles: set[str]):
    def _dependency(current_user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if not current_user.roles.intersection(allowed_roles):
            raise ForbiddenError("Insufficient role for this operation")
        return current_user

    return _dependency
