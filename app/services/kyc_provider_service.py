"""Adapter for the external KYC vendor (Sumsub).

In mock mode, or when no app token is configured, sessions and statuses are
generated locally. Mock statuses are derived from the reference id so that
tests get predictable outcomes.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from urllib.parse import quote, urlencode

from app.core.config import settings
from app.core.exceptions import BusinessRuleError, UpstreamServiceError
from app.models.enums import KycStatus
from app.services.http_client import ExternalAPIError, request_json, run_with_retry

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = {"sumsub"}
MOCK_BASE_URL = "https://mock-kyc-provider.example.com"
MOCK_REJECTION_REASON = "Document authenticity could not be verified"

STATUS_MAPPING: Dict[str, KycStatus] = {
    "pending": KycStatus.PENDING,
    "queued": KycStatus.PENDING,
    "prechecked": KycStatus.PENDING,
    "onhold": KycStatus.PENDING,
    "approved": KycStatus.VERIFIED,
    "verified": KycStatus.VERIFIED,
    "completed": KycStatus.VERIFIED,
    "rejected": KycStatus.REJECTED,
    "failed": KycStatus.REJECTED,
    "declined": KycStatus.REJECTED,
}


class KycProviderAPIError(ExternalAPIError):
    """KYC vendor call failed."""


@dataclass
class VerificationSession:
    provider: str
    reference_id: str
    redirect_url: str
    expires_at: datetime


@dataclass
class VerificationResult:
    reference_id: str
    status: KycStatus
    provider_data: Dict[str, Any] = field(default_factory=dict)
    rejection_reason: str | None = None


def normalize_provider(provider: str) -> str:
    key = (provider or "").lower()
    if key not in SUPPORTED_PROVIDERS:
        raise BusinessRuleError(f"Unsupported KYC provider: {provider}")
    return key


def generate_reference_id(provider: str, user_id: int) -> str:
    millis = int(time.time() * 1000)
    return f"{provider}_{user_id}_{millis}_{secrets.token_hex(8)}"


def map_provider_status(status: str | None) -> KycStatus:
    return STATUS_MAPPING.get((status or "").lower(), KycStatus.PENDING)


def verify_webhook_signature(raw_body: bytes, signature: str) -> bool:
    expected = hmac.new(
        settings.kyc_webhook_secret.encode("utf-8"),
        raw_body,
        hashlib.sha1,
    ).hexdigest()
    # Header values arrive latin-1 decoded and may hold any byte
    received = signature.strip().lower().encode("utf-8", "replace")
    return hmac.compare_digest(expected.encode("ascii"), received)


def _use_mock() -> bool:
    return settings.kyc_mock_mode or not settings.sumsub_app_token or not settings.sumsub_base_url


def create_verification_session(provider: str, user_id: int, redirect_url: str | None = None) -> VerificationSession:
    provider = normalize_provider(provider)
    reference_id = generate_reference_id(provider, user_id)
    redirect = redirect_url or settings.kyc_redirect_url
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.kyc_session_ttl_minutes)

    if _use_mock():
        query = urlencode({"reference": reference_id, "redirect": redirect}, quote_via=quote)
        return VerificationSession(
            provider=provider,
            reference_id=reference_id,
            redirect_url=f"{MOCK_BASE_URL}/{provider}/verification?{query}",
            expires_at=expires_at,
        )

    path = (
        "/resources/sdkIntegrations/levels/"
        f"{quote(settings.sumsub_level_name)}/websdkLink"
        f"?ttlInSecs={settings.kyc_session_ttl_minutes * 60}&externalUserId={quote(reference_id)}"
    )
    data = _call("kyc.session", "POST", path, body={"redirectUrl": redirect})
    url = data.get("url")
    if not url:
        raise UpstreamServiceError("KYC provider returned no verification link")
    logger.info("Created %s verification session %s for user %s", provider, reference_id, user_id)
    return VerificationSession(provider=provider, reference_id=reference_id, redirect_url=url, expires_at=expires_at)


def get_verification_status(reference_id: str) -> VerificationResult:
    if _use_mock():
        return _mock_result(reference_id)

    data = _call(
        "kyc.status",
        "GET",
        f"/resources/applicants/-;externalUserId={quote(reference_id)}/one",
    )
    review = data.get("review") or {}
    result = review.get("reviewResult") or {}
    status = review.get("reviewStatus")
    if status == "completed":
        status = "approved" if result.get("reviewAnswer") == "GREEN" else "rejected"
    mapped = map_provider_status(status)
    reason = None
    if mapped == KycStatus.REJECTED:
        reason = result.get("moderationComment") or ", ".join(result.get("rejectLabels") or []) or None
    return VerificationResult(
        reference_id=reference_id,
        status=mapped,
        provider_data=review,
        rejection_reason=reason,
    )


def _call(operation: str, method: str, path: str, *, body: Dict[str, Any] | None = None) -> Dict[str, Any]:
    content = json.dumps(body).encode("utf-8") if body is not None else b""
    url = f"{settings.sumsub_base_url.rstrip('/')}{path}"

    def _request() -> Dict[str, Any]:
        return request_json(
            method,
            url,
            timeout=settings.kyc_timeout,
            error_cls=KycProviderAPIError,
            headers=_signed_headers(method, path, content),
            content=content or None,
        )

    try:
        return run_with_retry(operation, _request)
    except KycProviderAPIError as exc:
        logger.warning("%s failed: %s", operation, exc)
        raise UpstreamServiceError(f"KYC provider request failed: {exc}") from exc


def _signed_headers(method: str, path: str, content: bytes) -> Dict[str, str]:
    ts = str(int(time.time()))
    message = ts.encode("utf-8") + method.upper().encode("utf-8") + path.encode("utf-8") + content
    signature = hmac.new((settings.sumsub_secret_key or "").encode("utf-8"), message, hashlib.sha256).hexdigest()
    return {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-App-Token": settings.sumsub_app_token or "",
        "X-App-Access-Ts": ts,
        "X-App-Access-Sig": signature,
    }


def _mock_result(reference_id: str) -> VerificationResult:
    bucket = ord(reference_id[-1]) % 10 if reference_id else 0
    now = datetime.now(timezone.utc).isoformat()
    data: Dict[str, Any] = {"applicantId": f"mock-applicant-{reference_id}", "createdAt": now}
    if bucket <= 3:
        data["reviewStatus"] = "pending"
        return VerificationResult(reference_id=reference_id, status=KycStatus.PENDING, provider_data=data)
    if bucket <= 7:
        data.update(
            reviewStatus="approved",
            reviewDate=now,
            reviewResult={"reviewAnswer": "GREEN", "label": "APPROVED", "rejectLabels": []},
        )
        return VerificationResult(reference_id=reference_id, status=KycStatus.VERIFIED, provider_data=data)
    data.update(
        reviewStatus="rejected",
        reviewDate=now,
        reviewResult={
            "reviewAnswer": "RED",
            "label": "REJECTED",
            "rejectLabels": ["DOCUMENT_VALIDITY"],
            "rejectReasons": [MOCK_REJECTION_REASON],
        },
    )
    return VerificationResult(
        reference_id=reference_id,
        status=KycStatus.REJECTED,
        provider_data=data,
        rejection_reason=MOCK_REJECTION_REASON,
    )
