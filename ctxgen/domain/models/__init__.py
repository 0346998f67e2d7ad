"""Domain models for ctxgen."""

from .parsed_payload import ParsedPayload
from .execution import (
    ExecutionOptions,
    ExecutionRequest,
    ExecutionResult,
    Failure,
)
from .message import Message, MessageType
from .workflow import (
    EngineState,
    ExecutionContext,
    Intent,
    IntentAction,
    StopReason,
    WorkflowConfig,
    WorkflowRunResult,
)


__all__ = [
    "ParsedPayload",
    "ExecutionOptions",
    "ExecutionRequest",
    "ExecutionResult",
    "Failure",
    "Message",
    "MessageType",
    "EngineState",
    "ExecutionContext",
    "Intent",
    "IntentAction",
    "StopReason",
    "WorkflowConfig",
    "WorkflowRunResult",
]
