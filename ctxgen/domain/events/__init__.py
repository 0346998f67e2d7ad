"""Orchestration event system for observer pattern notifications."""

from ctxgen.domain.events.event_types import WorkflowEventType
from ctxgen.domain.events.event import WorkflowEvent
from ctxgen.domain.events.observer import WorkflowObserver
from ctxgen.domain.events.emitter import WorkflowEventEmitter
from ctxgen.domain.events.stderr_observer import StderrEventObserver

__all__ = [
    "WorkflowEventType",
    "WorkflowEvent",
    "WorkflowObserver",
    "WorkflowEventEmitter",
    "StderrEventObserver",
]
