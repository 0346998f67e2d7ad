"""Provider orchestration: registry, selection, bounded execution and failover."""

from ctxgen.application.providers.bounded_executor import BoundedExecutor
from ctxgen.application.providers.failover import FailoverLoop
from ctxgen.application.providers.provider_execution_service import (
    ProviderExecutionService,
    ProviderStatus,
)
from ctxgen.application.providers.registry import ProviderDescriptor, ProviderRegistry
from ctxgen.application.providers.selector import ProviderSelector

__all__ = [
    "BoundedExecutor",
    "FailoverLoop",
    "ProviderDescriptor",
    "ProviderExecutionService",
    "ProviderRegistry",
    "ProviderSelector",
    "ProviderStatus",
]
