from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import UnauthorizedError
from app.db.session import get_db
from app.models.domain import User
from app.schemas.auth import (
    LoginRequest,
    OAuthAuthorizeResponse,
    OAuthCallbackRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    TokenUser,
)
from app.schemas.users import UserRead
from app.services import auth_service, oauth_service
from app.services.audit_service import log_action
from app.services.auth_service import LoginTokens
from app.services.user_service import role_codes

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _token_response(user: User, tokens: LoginTokens) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access.token,
        refresh_token=tokens.refresh.token,
        token_type="bearer",
        expires_at=tokens.access.expires_at,
        refresh_expires_at=tokens.refresh.expires_at,
        user=TokenUser(id=user.id, email=user.email, full_name=user.full_name, roles=role_codes(user)),
    )


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    ctx: deps.RequestContext = Depends(deps.get_request_context),
):
    user = auth_service.register_user(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
    )
    log_action(
        db,
        user_id=user.id,
        action="auth.register",
        target_type="user",
        target_id=str(user.id),
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
        commit=True,
    )
    return UserRead.model_validate(user)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    ctx: deps.RequestContext = Depends(deps.get_request_context),
):
    user = auth_service.authenticate_user(db, payload.email, payload.password)
    if not user:
        logger.warning("Failed login for %s from %s", payload.email, ctx.ip_address)
        log_action(
            db,
            user_id=None,
            action="auth.login",
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            success=False,
            details={"email": payload.email},
            commit=True,
        )
        raise UnauthorizedError("Email or password is incorrect")

    tokens = auth_service.issue_login_tokens(
        db,
        user=user,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )
    log_action(
        db,
        user_id=user.id,
        action="auth.login",
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
        success=True,
        commit=True,
    )
    return _token_response(user, tokens)


@router.post("/refresh", response_model=TokenResponse)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    user, tokens = auth_service.refresh_tokens(db, payload.refresh_token)
    return _token_response(user, tokens)


@router.post("/logout")
def logout(current_user: deps.AuthenticatedUser = Depends(deps.get_current_user), db: Session = Depends(get_db)):
    auth_service.revoke_session(db, current_user.token_jti)
    log_action(
        db,
        user_id=current_user.id,
        action="auth.logout",
        success=True,
        commit=True,
    )
    return {"status": "ok"}


@router.get("/oauth/{provider}/authorize", response_model=OAuthAuthorizeResponse)
def oauth_authorize(provider: str):
    url = oauth_service.build_authorization_url(provider)
    return OAuthAuthorizeResponse(provider=provider.lower(), authorization_url=url)


@router.post("/oauth/{provider}/callback", response_model=TokenResponse)
def oauth_callback(
    provider: str,
    payload: OAuthCallbackRequest,
    db: Session = Depends(get_db),
    ctx: deps.RequestContext = Depends(deps.get_request_context),
):
    profile = oauth_service.fetch_oauth_profile(provider, payload.code, redirect_uri=payload.redirect_uri)
    user = auth_service.login_with_oauth_profile(db, profile)
    tokens = auth_service.issue_login_tokens(
        db,
        user=user,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )
    log_action(
        db,
        user_id=user.id,
        action="auth.oauth_login",
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
        details={"provider": profile.provider},
        commit=True,
    )
    return _token_response(user, tokens)
