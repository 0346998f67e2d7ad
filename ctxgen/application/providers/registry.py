"""Ordered registry of provider descriptors."""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from ctxgen.application.config_models import ProviderEntry
from ctxgen.domain.providers.provider_factory import ProviderFactory
from ctxgen.domain.providers.response_provider import ResponseProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    """A registered backend.

    Attributes:
        name: Unique provider name (used for overrides and exclusion)
        priority: Lower is preferred
        provider: Adapter satisfying the ResponseProvider contract
        order: Registration index, breaks priority ties
    """

    name: str
    priority: int
    provider: ResponseProvider
    order: int = 0

    def is_available(self) -> bool:
        return self.provider.is_available()


class ProviderRegistry:
    """Holds descriptors sorted by (priority, registration order).

    The sort key makes priority order a total order: equal priorities keep
    the order in which they were registered.
    """

    def __init__(self) -> None:
        self._descriptors: list[ProviderDescriptor] = []
        self._next_order = 0

    def register(self, name: str, priority: int, provider: ResponseProvider) -> ProviderDescriptor:
        """Register a provider and keep the list sorted.

        Raises:
            ValueError: If the name is already registered
        """
        if self.get(name) is not None:
            raise ValueError(f"Provider '{name}' is already registered")

        descriptor = ProviderDescriptor(
            name=name,
            priority=priority,
            provider=provider,
            order=self._next_order,
        )
        self._next_order += 1
        self._descriptors.append(descriptor)
        self._descriptors.sort(key=lambda d: (d.priority, d.order))
        logger.debug(f"Registered provider {name} (priority: {priority})")
        return descriptor

    def get(self, name: str) -> ProviderDescriptor | None:
        for descriptor in self._descriptors:
            if descriptor.name == name:
                return descriptor
        return None

    def names(self) -> list[str]:
        return [d.name for d in self._descriptors]

    def __iter__(self) -> Iterator[ProviderDescriptor]:
        # Iterate over a snapshot so registration during iteration is harmless
        return iter(list(self._descriptors))

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    @classmethod
    def from_entries(cls, entries: Iterable[ProviderEntry]) -> "ProviderRegistry":
        """Build a registry from configured entries via ProviderFactory.

        Disabled entries are skipped.

        Raises:
            KeyError: If an entry names an unregistered provider
        """
        registry = cls()
        for entry in entries:
            if not entry.enabled:
                continue
            provider = ProviderFactory.create(entry.name, entry.config)
            registry.register(entry.name, entry.priority, provider)
        return registry
