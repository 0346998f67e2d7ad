"""Hosted ctxgen API response provider.

Fallback backend for users without their own model credentials. Requests go
to ``<base_url>/chat``; availability is probed via ``<base_url>/pricing``.
"""

import logging
import os
from typing import Any

import httpx

from ctxgen.domain.errors import FailureKind, ProviderError
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.domain.providers.http_errors import raise_for_provider_status
from ctxgen.domain.providers.response_provider import ResponseProvider

logger = logging.getLogger(__name__)

BASE_URL_ENV = "CTXGEN_API_URL"
API_KEY_ENV = "CTXGEN_API_KEY"
PROBE_TIMEOUT = 5.0


class HostedProvider(ResponseProvider):
    """Response provider for the hosted ctxgen API.

    Configuration:
        - base_url: API base URL (falls back to CTXGEN_API_URL)
        - api_key: Bearer token (falls back to CTXGEN_API_KEY)
        - model: Hosted model name (default: "ctxgen")
        - timeout: HTTP timeout in seconds (default: 120)
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(config)
        base_url = self.config.get("base_url") or os.environ.get(BASE_URL_ENV) or ""
        self._base_url = base_url.rstrip("/")
        self._api_key = self.config.get("api_key") or os.environ.get(API_KEY_ENV)
        self._model = self.config.get("model", "ctxgen")
        self._timeout = float(self.config.get("timeout", 120))
        self._transport = transport

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata."""
        return {
            "name": "hosted",
            "description": "Hosted ctxgen API",
            "requires_config": True,
            "config_keys": ["base_url", "api_key", "model", "timeout"],
            "default_timeout_ms": 120_000,
            "supports_system_prompt": False,
        }

    def _headers(self) -> dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(base_url=self._base_url, timeout=timeout, transport=self._transport)

    def is_available(self) -> bool:
        """Probe the pricing endpoint; non-2xx is unavailable, network errors propagate."""
        if not self._base_url:
            return False
        with self._client(PROBE_TIMEOUT) as client:
            response = client.get("/pricing", headers=self._headers())
        return response.is_success

    def generate_text(self, prompt: str, options: ExecutionOptions) -> str:
        if not self._base_url:
            raise ProviderError(
                f"Hosted API URL not configured (set {BASE_URL_ENV})",
                kind=FailureKind.UNAVAILABLE,
            )

        body = {
            "message": prompt,
            "context": {},
            "model": options.model or self._model,
            "temperature": options.temperature if options.temperature is not None else 0.7,
            "maxTokens": options.max_tokens or 4000,
            "stream": False,
        }

        try:
            with self._client(self._timeout) as client:
                response = client.post("/chat", json=body, headers=self._headers())
        except httpx.TimeoutException as e:
            raise ProviderError(f"Hosted API request timed out: {e}", kind=FailureKind.TIMEOUT) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Hosted API request failed: {e}", kind=FailureKind.UNAVAILABLE) from e

        raise_for_provider_status(response, "Hosted API")

        try:
            result = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Hosted API returned non-JSON response: {response.text[:100]}",
                kind=FailureKind.MALFORMED,
            ) from e

        if not isinstance(result, dict) or not result.get("success"):
            error = result.get("error") if isinstance(result, dict) else None
            # Error text may carry 402/429 markers; leave kind to the classifier
            raise ProviderError(error or "Hosted API generation failed")

        content = (result.get("data") or {}).get("message")
        if not isinstance(content, str):
            raise ProviderError("Hosted API response has no message content", kind=FailureKind.MALFORMED)
        return content
