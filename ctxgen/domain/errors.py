"""Domain-level exceptions for ctxgen."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ctxgen.domain.models.execution import Failure


class FailureKind(str, Enum):
    """Classification of a single failed provider attempt."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    PAYMENT_REQUIRED = "payment_required"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"
    EXHAUSTED = "exhausted"


class ProviderError(Exception):
    """Raised when a provider fails (network, auth, timeout, etc.).

    Adapters that know why a call failed pass an explicit ``kind``; anything
    else is classified from the message by ``classify_failure``.
    """

    def __init__(self, message: str, kind: FailureKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind


class ResponseParseError(Exception):
    """Raised when a model response cannot be parsed at all."""

    pass


class NoProvidersConfigured(Exception):
    """Raised when the registry holds no providers."""

    pass


class AllProvidersFailed(Exception):
    """Raised when every provider was excluded within one top-level call.

    Attributes:
        attempts: Ordered failures, one per provider attempt.
    """

    def __init__(self, attempts: list["Failure"]) -> None:
        self.attempts = list(attempts)
        if self.attempts:
            tried = ", ".join(f"{a.provider_name} ({a.kind.value})" for a in self.attempts)
            message = f"All AI providers failed: {tried}. Retry when conditions improve."
        else:
            message = "No AI providers available - configure API keys and retry"
        super().__init__(message)

    @property
    def provider_names(self) -> list[str]:
        return [a.provider_name for a in self.attempts]


class RetryLimitReached(Exception):
    """Raised when a workflow run exhausts its retry budget on stage errors."""

    def __init__(self, outputs: dict[str, Any], retry_count: int, last_error: str | None = None) -> None:
        self.outputs = dict(outputs)
        self.retry_count = retry_count
        self.last_error = last_error
        completed = ", ".join(self.outputs) or "none"
        message = f"Workflow retry limit reached after {retry_count} retries (completed stages: {completed})"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)


class InvalidTransition(Exception):
    """Raised when the workflow engine attempts an illegal state change."""

    def __init__(self, state: str, event: str) -> None:
        self.state = state
        self.event = event
        super().__init__(f"Event '{event}' is not valid from state '{state}'")


_RATE_LIMIT_MARKERS = ("429", "rate limit", "ratelimitreached", "too many requests")
_PAYMENT_MARKERS = ("402", "payment required", "insufficient credits", "insufficient_quota")
_TIMEOUT_MARKERS = ("timeout", "timed out")


def classify_failure(error: BaseException) -> FailureKind:
    """Map an exception raised by a provider call to a FailureKind.

    An explicit kind on ProviderError wins. Otherwise the exception type and
    message are inspected; unknown errors are treated as UNAVAILABLE.
    """
    if isinstance(error, ProviderError) and error.kind is not None:
        return error.kind
    if isinstance(error, ResponseParseError):
        return FailureKind.MALFORMED
    if isinstance(error, TimeoutError):
        return FailureKind.TIMEOUT

    text = str(error).lower()
    if any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return FailureKind.RATE_LIMITED
    if any(marker in text for marker in _PAYMENT_MARKERS):
        return FailureKind.PAYMENT_REQUIRED
    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return FailureKind.TIMEOUT
    return FailureKind.UNAVAILABLE
