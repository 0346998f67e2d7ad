"""Event emitter for dispatching orchestration events to observers."""

import logging
from collections import defaultdict
from typing import Any

from ctxgen.domain.events.event import WorkflowEvent
from ctxgen.domain.events.event_types import WorkflowEventType
from ctxgen.domain.events.observer import WorkflowObserver

logger = logging.getLogger(__name__)


class WorkflowEventEmitter:
    """Central event dispatcher shared by the failover loop and workflow engine."""

    def __init__(self) -> None:
        self._observers: dict[WorkflowEventType, list[WorkflowObserver]] = defaultdict(list)
        self._global_observers: list[WorkflowObserver] = []

    def subscribe(
        self,
        observer: WorkflowObserver,
        event_types: list[WorkflowEventType] | None = None,
    ) -> None:
        """Subscribe to specific event types, or all events if None."""
        if event_types is None:
            self._global_observers.append(observer)
            return
        for event_type in event_types:
            self._observers[event_type].append(observer)

    def unsubscribe(self, observer: WorkflowObserver) -> None:
        """Remove observer from all subscriptions."""
        if observer in self._global_observers:
            self._global_observers.remove(observer)
        for observers in self._observers.values():
            if observer in observers:
                observers.remove(observer)

    def has_observers(self, event_type: WorkflowEventType) -> bool:
        return bool(self._global_observers or self._observers.get(event_type))

    def publish(self, event_type: WorkflowEventType, **fields: Any) -> None:
        """Build and emit an event; skipped entirely when nobody listens.

        Keyword arguments matching WorkflowEvent fields (provider, agent,
        attempt) are set directly; everything else goes into metadata.
        """
        if not self.has_observers(event_type):
            return
        direct = {k: fields.pop(k) for k in ("provider", "agent", "attempt") if k in fields}
        self.emit(WorkflowEvent(event_type=event_type, metadata=fields, **direct))

    def emit(self, event: WorkflowEvent) -> None:
        """Dispatch event to all relevant observers."""
        for observer in [*self._global_observers, *self._observers.get(event.event_type, [])]:
            self._safe_notify(observer, event)

    def _safe_notify(self, observer: WorkflowObserver, event: WorkflowEvent) -> None:
        """Notify observer, catching and logging any exceptions."""
        try:
            observer.on_event(event)
        except Exception as e:
            logger.warning(f"Observer {observer} failed on {event.event_type.value}: {e}")
