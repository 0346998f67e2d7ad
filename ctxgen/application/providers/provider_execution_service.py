"""ProviderExecutionService - inbound facade for provider execution.

Centralizes:
- Building the provider registry from configuration
- Failover across providers with bounded latency
- Component prompts and response normalization
- Provider status reporting
"""

import logging
from dataclasses import dataclass, field

from ctxgen.application.config_models import CtxgenConfig
from ctxgen.application.providers.bounded_executor import BoundedExecutor
from ctxgen.application.providers.failover import FailoverLoop
from ctxgen.application.providers.registry import ProviderRegistry
from ctxgen.application.providers.selector import ProviderSelector
from ctxgen.application.response_normalizer import ResponseNormalizer
from ctxgen.domain.constants import DEFAULT_TIMEOUT_MS
from ctxgen.domain.events import WorkflowEventEmitter
from ctxgen.domain.models.execution import ExecutionOptions, ExecutionRequest, ExecutionResult

logger = logging.getLogger(__name__)

COMPONENT_SYSTEM_PROMPT = """You are a React component generator. Generate production-ready React components with TypeScript.

Requirements:
- Use functional components with hooks
- Include proper TypeScript types
- Add accessibility attributes
- Use Tailwind CSS for styling
- Include proper imports and exports
- Generate complete, runnable code"""

REFINEMENT_SYSTEM_PROMPT = """You are a React component refiner. Improve and modify existing React components.

Requirements:
- Maintain existing functionality
- Preserve TypeScript types
- Keep accessibility attributes
- Follow React best practices
- Provide complete refined component"""


@dataclass(frozen=True, slots=True)
class ProviderStatus:
    """Availability snapshot of one registered provider."""

    name: str
    priority: int
    available: bool


@dataclass
class ProviderExecutionService:
    """Service for executing prompts against the configured providers.

    The startup banner listing active providers is logged once per
    instance, on the first call that needs a provider.
    """

    registry: ProviderRegistry
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    event_emitter: WorkflowEventEmitter = field(default_factory=WorkflowEventEmitter)
    normalizer: ResponseNormalizer = field(default_factory=ResponseNormalizer)
    selector: ProviderSelector = field(default_factory=ProviderSelector)
    _has_logged_startup: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._failover = FailoverLoop(
            self.registry,
            selector=self.selector,
            executor=BoundedExecutor(self.default_timeout_ms),
            normalizer=self.normalizer,
            event_emitter=self.event_emitter,
        )

    @classmethod
    def from_config(
        cls,
        config: CtxgenConfig,
        *,
        event_emitter: WorkflowEventEmitter | None = None,
    ) -> "ProviderExecutionService":
        """Build the service and its registry from resolved configuration.

        Raises:
            KeyError: If a configured provider name is not registered
        """
        return cls(
            registry=ProviderRegistry.from_entries(config.providers),
            default_timeout_ms=config.default_timeout_ms,
            event_emitter=event_emitter or WorkflowEventEmitter(),
        )

    def generate_text(
        self,
        prompt: str,
        options: ExecutionOptions | None = None,
        *,
        provider: str | None = None,
    ) -> ExecutionResult:
        """Generate text with failover.

        Args:
            prompt: The prompt text to send
            options: Per-call generation options
            provider: Preferred provider name (overrides CTXGEN_PROVIDER)

        Raises:
            AllProvidersFailed: If every provider failed
            NoProvidersConfigured: If no provider is registered
        """
        self._log_startup()
        request = ExecutionRequest(prompt=prompt, options=options or ExecutionOptions())
        return self._failover.run(request, override_name=provider)

    def generate_component(
        self,
        prompt: str,
        options: ExecutionOptions | None = None,
        *,
        provider: str | None = None,
    ) -> ExecutionResult:
        """Generate a component; the result's payload holds the parsed code."""
        self._log_startup()
        request = ExecutionRequest(
            prompt=f"Generate a React component for: {prompt}",
            options=_with_system_prompt(options, COMPONENT_SYSTEM_PROMPT),
        )
        return self._failover.run(request, normalize=True, override_name=provider)

    def generate_component_refinement(
        self,
        component_code: str,
        prompt: str,
        options: ExecutionOptions | None = None,
        *,
        provider: str | None = None,
    ) -> ExecutionResult:
        """Refine existing component code; the result's payload holds the parsed code."""
        self._log_startup()
        request = ExecutionRequest(
            prompt=(
                f"Component to refine:\n```tsx\n{component_code}\n```\n\n"
                f"Refinement request: {prompt}"
            ),
            options=_with_system_prompt(options, REFINEMENT_SYSTEM_PROMPT),
        )
        return self._failover.run(request, normalize=True, override_name=provider)

    def provider_status(self) -> list[ProviderStatus]:
        """Probe every registered provider in priority order."""
        return [
            ProviderStatus(
                name=d.name,
                priority=d.priority,
                available=self.selector.probe(d),
            )
            for d in self.registry
        ]

    def active_provider_name(self, provider: str | None = None) -> str | None:
        """Name of the provider the next call would start with, if any."""
        descriptor = self.selector.select(self.registry, override_name=provider)
        return descriptor.name if descriptor else None

    def _log_startup(self) -> None:
        if self._has_logged_startup:
            return
        self._has_logged_startup = True
        names = self.registry.names()
        if names:
            logger.info(f"Initialized {len(names)} AI providers: {', '.join(names)}")
        else:
            logger.warning("No AI providers configured")


def _with_system_prompt(options: ExecutionOptions | None, system_prompt: str) -> ExecutionOptions:
    """Apply a default system prompt unless the caller supplied one."""
    options = options or ExecutionOptions()
    if options.system_prompt:
        return options
    return options.model_copy(update={"system_prompt": system_prompt})
