"""HTTP status handling shared by the httpx-based providers."""

import httpx

from ctxgen.domain.errors import FailureKind, ProviderError


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a JSON or text error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
        if body.get("message"):
            return str(body["message"])
    return response.text[:200]


def raise_for_provider_status(response: httpx.Response, label: str) -> None:
    """Raise a classified ProviderError for non-2xx responses.

    Args:
        response: The httpx response
        label: Human-readable provider label for messages (e.g., "Grok API")

    Raises:
        ProviderError: 429 -> RATE_LIMITED, 402 -> PAYMENT_REQUIRED,
            408/504 -> TIMEOUT, anything else -> UNAVAILABLE
    """
    if response.is_success:
        return

    status = response.status_code
    detail = _error_detail(response)
    message = f"{label} error: {status} - {detail}"

    if status == 429:
        raise ProviderError(message, kind=FailureKind.RATE_LIMITED)
    if status == 402:
        raise ProviderError(message, kind=FailureKind.PAYMENT_REQUIRED)
    if status in (408, 504):
        raise ProviderError(message, kind=FailureKind.TIMEOUT)
    raise ProviderError(message, kind=FailureKind.UNAVAILABLE)
