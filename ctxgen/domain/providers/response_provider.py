from abc import ABC, abstractmethod
from typing import Any

from ctxgen.domain.models.execution import ExecutionOptions


class ResponseProvider(ABC):
    """Capability contract every text-generation backend adapter satisfies.

    The orchestration core depends only on ``is_available`` and
    ``generate_text``; nothing above this interface knows a backend's
    request/response schema.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata for discovery commands.

        Returns:
            dict with keys: name, description, requires_config, config_keys,
                           default_timeout_ms, supports_system_prompt
        """
        return {
            "name": "unknown",
            "description": "No description available",
            "requires_config": False,
            "config_keys": [],
            "default_timeout_ms": None,  # None = use orchestrator default
            "supports_system_prompt": False,
        }

    @abstractmethod
    def is_available(self) -> bool:
        """Report whether the backend can currently serve a request.

        Called at selection time, before every call. Implementations should
        be cheap (API key present, CLI on PATH, health endpoint reachable).
        Raising is allowed; the selector treats any exception as "not
        available".
        """
        ...

    @abstractmethod
    def generate_text(self, prompt: str, options: ExecutionOptions) -> str:
        """Generate text for the given prompt.

        Args:
            prompt: The prompt text to send to the model
            options: Per-call options (temperature, max_tokens, model, ...)

        Returns:
            Raw model output

        Raises:
            ProviderError: If the call fails. Adapters set ``kind`` when the
                failure class is known (rate limited, payment required, ...).
        """
        ...
