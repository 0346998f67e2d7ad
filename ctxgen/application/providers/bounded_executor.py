"""Deadline-bounded provider execution."""

import logging
import threading
import time
from typing import Any

from ctxgen.application.providers.registry import ProviderDescriptor
from ctxgen.domain.constants import DEFAULT_TIMEOUT_MS
from ctxgen.domain.errors import FailureKind, classify_failure
from ctxgen.domain.models.execution import ExecutionRequest, ExecutionResult, Failure

logger = logging.getLogger(__name__)


class _CallOutcome:
    """Slot written once by the worker thread."""

    __slots__ = ("value", "error")

    def __init__(self) -> None:
        self.value: Any = None
        self.error: Exception | None = None


class BoundedExecutor:
    """Runs one provider call against a deadline.

    The call runs on a daemon worker thread while the caller waits on a
    completion event with a timeout; whichever finishes first wins. A
    timed-out call is abandoned, not cancelled: the worker keeps running
    until the backend returns and its result is discarded. Backends without
    their own cancellation keep consuming resources until then.
    """

    def __init__(self, default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        if default_timeout_ms <= 0:
            raise ValueError("default_timeout_ms must be > 0")
        self.default_timeout_ms = default_timeout_ms

    def execute(self, descriptor: ProviderDescriptor, request: ExecutionRequest) -> ExecutionResult | Failure:
        """Execute the request on one provider.

        Returns:
            ExecutionResult on success, otherwise a classified Failure
            (timeout, malformed for empty output, or the classified error)
        """
        timeout_ms = request.options.timeout_ms or self.default_timeout_ms
        outcome = _CallOutcome()
        done = threading.Event()

        def _call() -> None:
            try:
                outcome.value = descriptor.provider.generate_text(request.prompt, request.options)
            except Exception as e:
                outcome.error = e
            finally:
                done.set()

        worker = threading.Thread(
            target=_call,
            name=f"ctxgen-provider-{descriptor.name}",
            daemon=True,
        )
        started = time.monotonic()
        worker.start()

        if not done.wait(timeout_ms / 1000):
            logger.warning(f"Provider {descriptor.name} timed out after {timeout_ms}ms; abandoning call")
            return Failure(
                kind=FailureKind.TIMEOUT,
                provider_name=descriptor.name,
                message=f"Timeout after {timeout_ms}ms",
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)

        if outcome.error is not None:
            kind = classify_failure(outcome.error)
            logger.info(f"Provider {descriptor.name} failed ({kind.value}): {outcome.error}")
            return Failure(kind=kind, provider_name=descriptor.name, message=str(outcome.error))

        text = outcome.value
        if not isinstance(text, str) or not text.strip():
            return Failure(
                kind=FailureKind.MALFORMED,
                provider_name=descriptor.name,
                message="Provider returned an empty response",
            )

        logger.debug(f"Provider {descriptor.name} responded in {elapsed_ms}ms ({len(text)} chars)")
        return ExecutionResult(text=text, provider_name=descriptor.name, elapsed_ms=elapsed_ms)
