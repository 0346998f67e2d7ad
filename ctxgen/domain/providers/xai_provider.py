"""Grok response provider using the X AI chat completions API."""

import logging
import os
import warnings
from typing import Any

import httpx

from ctxgen.domain.errors import FailureKind, ProviderError
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.domain.providers.http_errors import raise_for_provider_status
from ctxgen.domain.providers.response_provider import ResponseProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.x.ai/v1"
DEFAULT_MODEL = "grok-4-fast-reasoning"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4000

API_KEY_ENV_VARS = ("XAI_API_KEY", "GROK_API_KEY")


class XaiProvider(ResponseProvider):
    """Response provider for X AI (Grok) over HTTP.

    Configuration:
        - api_key: API key (falls back to XAI_API_KEY / GROK_API_KEY)
        - base_url: API base URL (default: https://api.x.ai/v1)
        - model: Default model
        - timeout: HTTP timeout in seconds (default: 120)
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(config)
        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown XaiProvider config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        self._base_url = self.config.get("base_url", DEFAULT_BASE_URL).rstrip("/")
        self._model = self.config.get("model", DEFAULT_MODEL)
        self._timeout = float(self.config.get("timeout", 120))
        self._transport = transport

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata."""
        return {
            "name": "xai",
            "description": "Grok via X AI chat completions API",
            "requires_config": True,
            "config_keys": ["api_key", "base_url", "model", "timeout"],
            "default_timeout_ms": 120_000,
            "supports_system_prompt": True,
        }

    @property
    def api_key(self) -> str | None:
        if self.config.get("api_key"):
            return self.config["api_key"]
        for name in API_KEY_ENV_VARS:
            if os.environ.get(name):
                return os.environ[name]
        return None

    def is_available(self) -> bool:
        """Available when an API key is configured."""
        return bool(self.api_key)

    def generate_text(self, prompt: str, options: ExecutionOptions) -> str:
        api_key = self.api_key
        if not api_key:
            raise ProviderError("Grok API key not found", kind=FailureKind.UNAVAILABLE)

        messages: list[dict[str, str]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        body = {
            "model": options.model or self._model,
            "messages": messages,
            "temperature": options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
        }

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    f"{self._base_url}/chat/completions",
                    json=body,
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.TimeoutException as e:
            raise ProviderError(f"Grok request timed out: {e}", kind=FailureKind.TIMEOUT) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Grok request failed: {e}", kind=FailureKind.UNAVAILABLE) from e

        raise_for_provider_status(response, "Grok API")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                f"Grok API returned an unexpected response shape: {e}",
                kind=FailureKind.MALFORMED,
            ) from e

        logger.debug(f"Grok response received ({len(content or '')} chars)")
        return content or ""
