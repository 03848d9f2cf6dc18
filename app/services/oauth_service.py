from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import urlencode

from app.core.config import settings
from app.core.exceptions import BusinessRuleError, UpstreamServiceError
from app.models.enums import AuthProvider
from app.services.http_client import ExternalAPIError, request_json, run_with_retry

SUPPORTED_PROVIDERS = {"google", "azure"}


class OAuthAPIError(ExternalAPIError):
    """OAuth provider call failed."""


@dataclass
class OAuthProfile:
    provider: str
    provider_id: str
    email: str
    full_name: str
    avatar_url: str | None = None

    @property
    def auth_provider(self) -> str:
        return AuthProvider(self.provider.upper()).value


def _endpoints(provider: str) -> Dict[str, str]:
    if provider == "google":
        return {
            "authorize": "https://accounts.google.com/o/oauth2/v2/auth",
            "token": "https://oauth2.googleapis.com/token",
            "userinfo": "https://openidconnect.googleapis.com/v1/userinfo",
        }
    tenant = settings.azure_tenant_id
    return {
        "authorize": f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
        "token": f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token",
        "userinfo": "https://graph.microsoft.com/oidc/userinfo",
    }


def _credentials(provider: str) -> tuple[str | None, str | None]:
    if provider == "google":
        return settings.google_client_id, settings.google_client_secret
    return settings.azure_client_id, settings.azure_client_secret


def normalize_provider(provider: str) -> str:
    key = provider.lower()
    if key not in SUPPORTED_PROVIDERS:
        raise BusinessRuleError(f"Unsupported OAuth provider: {provider}")
    return key


def build_authorization_url(provider: str, *, state: str | None = None) -> str:
    provider = normalize_provider(provider)
    client_id, _ = _credentials(provider)
    query = {
        "client_id": client_id or "mock-client-id",
        "redirect_uri": settings.oauth_redirect_uri,
        "response_type": "code",
        "scope": "openid email profile",
        "state": state or secrets.token_urlsafe(16),
    }
    return f"{_endpoints(provider)['authorize']}?{urlencode(query)}"


def fetch_oauth_profile(provider: str, code: str, *, redirect_uri: str | None = None) -> OAuthProfile:
    provider = normalize_provider(provider)
    client_id, client_secret = _credentials(provider)
    if settings.oauth_mock_mode or not client_id or not client_secret:
        return _mock_profile(provider, code)

    endpoints = _endpoints(provider)

    def _call() -> OAuthProfile:
        token_data = request_json(
            "POST",
            endpoints["token"],
            timeout=settings.oauth_timeout,
            error_cls=OAuthAPIError,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri or settings.oauth_redirect_uri,
            },
        )
        access_token = token_data.get("access_token")
        if not access_token:
            raise OAuthAPIError("Token exchange returned no access_token", payload=token_data)
        userinfo = request_json(
            "GET",
            endpoints["userinfo"],
            timeout=settings.oauth_timeout,
            error_cls=OAuthAPIError,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return map_oauth_profile(provider, userinfo)

    try:
        return run_with_retry(f"oauth.{provider}.profile", _call)
    except OAuthAPIError as exc:
        raise UpstreamServiceError(f"{provider} sign-in failed: {exc}") from exc


def map_oauth_profile(provider: str, data: Dict[str, Any]) -> OAuthProfile:
    subject = data.get("sub") or data.get("id") or data.get("oid")
    email = data.get("email") or data.get("preferred_username") or data.get("upn")
    if not subject or not email:
        raise OAuthAPIError("OAuth profile is missing subject or email", payload=data)
    name = data.get("name") or " ".join(
        part for part in (data.get("given_name"), data.get("family_name")) if part
    )
    return OAuthProfile(
        provider=provider,
        provider_id=f"{provider}:{subject}",
        email=str(email).lower(),
        full_name=name or str(email).split("@")[0],
        avatar_url=data.get("picture"),
    )


def _mock_profile(provider: str, code: str) -> OAuthProfile:
    digest = hashlib.sha1(code.encode("utf-8")).hexdigest()[:12]
    return map_oauth_profile(
        provider,
        {
            "sub": digest,
            "email": f"{provider}-{digest}@oauth.example.com",
            "name": f"{provider.title()} User {digest[:4]}",
            "picture": None,
        },
    )
