"""Multi-stage workflow: coordinator, intent resolver, transitions and engine."""

from ctxgen.application.workflow.coordinator import WorkflowCoordinator
from ctxgen.application.workflow.engine import WorkflowEngine
from ctxgen.application.workflow.intent_resolver import IntentResolver, score_output
from ctxgen.application.workflow.stages import AgentStage, ProviderBackedStage
from ctxgen.application.workflow.transitions import (
    EngineEvent,
    EngineTransitionTable,
    TransitionResult,
)

__all__ = [
    "AgentStage",
    "EngineEvent",
    "EngineTransitionTable",
    "IntentResolver",
    "ProviderBackedStage",
    "TransitionResult",
    "WorkflowCoordinator",
    "WorkflowEngine",
    "score_output",
]
