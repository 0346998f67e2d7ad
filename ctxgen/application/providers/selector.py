"""Provider selection for a single call."""

import logging
import os
from typing import AbstractSet

from ctxgen.application.providers.registry import ProviderDescriptor, ProviderRegistry
from ctxgen.domain.constants import PROVIDER_OVERRIDE_ENV

logger = logging.getLogger(__name__)


class ProviderSelector:
    """Picks the provider for one call.

    An explicit override wins whenever it names a registered, non-excluded
    provider whose availability probe passes. Otherwise providers are
    scanned in priority order. Returning None is a normal condition.
    """

    def __init__(self, override_env: str = PROVIDER_OVERRIDE_ENV) -> None:
        self.override_env = override_env

    def select(
        self,
        registry: ProviderRegistry,
        override_name: str | None = None,
        excluded: AbstractSet[str] = frozenset(),
    ) -> ProviderDescriptor | None:
        """Select a provider.

        Args:
            registry: Providers in priority order
            override_name: Explicit provider name; when None the override
                environment variable is read at call time
            excluded: Names that must not be selected

        Returns:
            The chosen descriptor, or None when nothing is available
        """
        if override_name is None:
            override_name = os.environ.get(self.override_env) or None

        if override_name:
            preferred = registry.get(override_name)
            if preferred is None:
                logger.warning(f"Preferred provider {override_name} not found in registered providers")
            elif preferred.name in excluded:
                logger.debug(f"Preferred provider {override_name} already excluded for this call")
            elif self.probe(preferred):
                logger.debug(f"Provider override: using {override_name}")
                return preferred
            else:
                logger.info(
                    f"Preferred provider {override_name} not available, falling back to priority order"
                )

        for descriptor in registry:
            if descriptor.name in excluded:
                continue
            if self.probe(descriptor):
                return descriptor

        return None

    @staticmethod
    def probe(descriptor: ProviderDescriptor) -> bool:
        """Run the availability probe; any exception counts as unavailable."""
        try:
            return bool(descriptor.is_available())
        except Exception as e:
            logger.info(f"Provider {descriptor.name} not available: {e}")
            return False
