"""Shared plumbing for outbound provider calls (RPC nodes, KYC vendor, OAuth)."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, TypeVar

import httpx

T = TypeVar("T")

MAX_RETRY_ATTEMPTS = 3
BASE_RETRY_DELAY = 0.4
MAX_RETRY_DELAY = 2.0

logger = logging.getLogger(__name__)


class ExternalAPIError(RuntimeError):
    """Outbound provider call failed."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        retryable: bool = False,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.payload = payload or {}


def request_json(
    method: str,
    url: str,
    *,
    timeout: float,
    error_cls: type[ExternalAPIError] = ExternalAPIError,
    **kwargs: Any,
) -> Any:
    try:
        with httpx.Client(timeout=timeout, verify=True) as client:
            response = client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:  # network or timeout
        raise error_cls(f"Request to {url} failed: {exc}", retryable=True) from exc

    if response.status_code >= 400:
        raise error_cls(
            f"HTTP {response.status_code} from {url}",
            code=str(response.status_code),
            retryable=response.status_code >= 500 or response.status_code == 429,
            payload={"body": response.text[:500]},
        )
    try:
        return response.json()
    except ValueError as exc:
        raise error_cls(f"Non-JSON response from {url}") from exc


def run_with_retry(operation: str, func: Callable[[], T], *, enabled: bool = True) -> T:
    attempt = 1
    while True:
        try:
            return func()
        except ExternalAPIError as exc:
            if not enabled or not exc.retryable or attempt >= MAX_RETRY_ATTEMPTS:
                raise
            delay = min(BASE_RETRY_DELAY * (2 ** (attempt - 1)), MAX_RETRY_DELAY)
            logger.warning("%s failed (attempt %s), retrying in %.1fs: %s", operation, attempt, delay, exc)
            time.sleep(delay)
            attempt += 1
