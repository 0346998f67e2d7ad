"""Sequential failover across registered providers."""

import logging
from typing import AbstractSet

from ctxgen.application.providers.bounded_executor import BoundedExecutor
from ctxgen.application.providers.registry import ProviderRegistry
from ctxgen.application.providers.selector import ProviderSelector
from ctxgen.application.response_normalizer import ResponseNormalizer
from ctxgen.domain.errors import (
    AllProvidersFailed,
    FailureKind,
    NoProvidersConfigured,
    ResponseParseError,
)
from ctxgen.domain.events import WorkflowEventEmitter, WorkflowEventType
from ctxgen.domain.models.execution import ExecutionRequest, ExecutionResult, Failure

logger = logging.getLogger(__name__)


class FailoverLoop:
    """Tries providers one at a time until one succeeds.

    Every failed provider is skipped for the rest of the call, so a call
    makes at most ``len(registry)`` attempts. Rate-limited providers are only
    skipped for this call; every other failure kind also lands in the
    call's exclusion set. The caller's ``excluded`` set is never mutated.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        selector: ProviderSelector | None = None,
        executor: BoundedExecutor | None = None,
        normalizer: ResponseNormalizer | None = None,
        event_emitter: WorkflowEventEmitter | None = None,
    ) -> None:
        self.registry = registry
        self.selector = selector or ProviderSelector()
        self.executor = executor or BoundedExecutor()
        self.normalizer = normalizer or ResponseNormalizer()
        self.event_emitter = event_emitter or WorkflowEventEmitter()

    def run(
        self,
        request: ExecutionRequest,
        excluded: AbstractSet[str] = frozenset(),
        *,
        normalize: bool = False,
        override_name: str | None = None,
    ) -> ExecutionResult:
        """Execute the request with failover.

        Args:
            request: Prompt and options
            excluded: Provider names the caller already ruled out
            normalize: Parse the response into a ParsedPayload
            override_name: Preferred provider; None defers to the environment

        Returns:
            The first successful result

        Raises:
            NoProvidersConfigured: If the registry is empty
            AllProvidersFailed: If no provider could produce a result
        """
        if not len(self.registry):
            raise NoProvidersConfigured("No AI providers registered")

        excluded_now = set(excluded)
        rate_limited: set[str] = set()
        attempts: list[Failure] = []

        for attempt in range(1, len(self.registry) + 1):
            descriptor = self.selector.select(
                self.registry,
                override_name=override_name,
                excluded=excluded_now | rate_limited,
            )
            if descriptor is None:
                break

            self.event_emitter.publish(
                WorkflowEventType.PROVIDER_SELECTED,
                provider=descriptor.name,
                attempt=attempt,
            )
            outcome = self.executor.execute(descriptor, request)
            if normalize and isinstance(outcome, ExecutionResult):
                outcome = self._normalize(outcome)

            if isinstance(outcome, ExecutionResult):
                self.event_emitter.publish(
                    WorkflowEventType.PROVIDER_SUCCEEDED,
                    provider=descriptor.name,
                    attempt=attempt,
                    elapsed_ms=outcome.elapsed_ms,
                )
                return outcome

            attempts.append(outcome)
            logger.warning(f"Provider {descriptor.name} failed ({outcome.kind.value}): {outcome.message}")
            self.event_emitter.publish(
                WorkflowEventType.PROVIDER_FAILED,
                provider=descriptor.name,
                attempt=attempt,
                kind=outcome.kind.value,
                message=outcome.message,
            )
            if outcome.kind == FailureKind.RATE_LIMITED:
                rate_limited.add(descriptor.name)
            else:
                excluded_now.add(descriptor.name)

        error = AllProvidersFailed(attempts)
        logger.error(str(error))
        self.event_emitter.publish(
            WorkflowEventType.ALL_PROVIDERS_FAILED,
            attempt=len(attempts),
            providers=[a.provider_name for a in attempts],
        )
        raise error

    def _normalize(self, result: ExecutionResult) -> ExecutionResult | Failure:
        try:
            payload = self.normalizer.parse(result.text)
        except ResponseParseError as e:
            return Failure(kind=FailureKind.MALFORMED, provider_name=result.provider_name, message=str(e))
        return result.model_copy(update={"payload": payload})
