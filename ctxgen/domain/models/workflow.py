"""Workflow engine models: intents, context, configuration and run results."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ctxgen.domain.constants import DEFAULT_RETRY_LIMIT
from ctxgen.domain.errors import RetryLimitReached
from ctxgen.domain.models.message import Message


class IntentAction(str, Enum):
    """What the workflow should do after a stage produced output."""

    CONTINUE = "continue"  # Advance to the next stage
    REFINE = "refine"      # Retry the same stage with an augmented prompt
    COMPLETE = "complete"  # Output is good enough to finish


class Intent(BaseModel):
    """Scored judgment of a stage's output. Never mutated once created."""

    model_config = ConfigDict(frozen=True)

    action: IntentAction
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = ""
    next_steps: tuple[str, ...] = ()


class ExecutionContext(BaseModel):
    """Rolling context threaded by value through the workflow engine.

    Each step produces a new context via ``evolve``; instances are frozen.
    """

    model_config = ConfigDict(frozen=True)

    user_prompt: str = ""
    previous_outputs: dict[str, Any] = Field(default_factory=dict)
    retry_count: int = 0

    @field_validator("retry_count")
    @classmethod
    def _retry_count_ge_0(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry_count must be >= 0")
        return v

    def evolve(self, **changes: Any) -> "ExecutionContext":
        """Return a copy with ``changes`` applied; outputs are copied, not shared."""
        if "previous_outputs" in changes:
            changes["previous_outputs"] = dict(changes["previous_outputs"])
        else:
            changes["previous_outputs"] = dict(self.previous_outputs)
        return self.model_copy(update=changes)


class WorkflowConfig(BaseModel):
    """Supplied once at workflow start; immutable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    agents: tuple[str, ...]
    retry_limit: int = DEFAULT_RETRY_LIMIT
    enable_auto_transition: bool = True

    @field_validator("agents")
    @classmethod
    def _agents_non_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("agents must contain at least one stage")
        if any(not a.strip() for a in v):
            raise ValueError("agent names must be non-empty")
        return v

    @field_validator("retry_limit")
    @classmethod
    def _retry_limit_ge_0(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry_limit must be >= 0")
        return v

    @property
    def max_attempts(self) -> int:
        """Hard cap on stage invocations per run."""
        return len(self.agents) * 2


class EngineState(str, Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    TRANSITIONING = "transitioning"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


class StopReason(str, Enum):
    """Why a workflow run stopped."""

    ALL_STAGES_DONE = "all_stages_done"  # Resolver had no next stage
    NO_TRANSITION = "no_transition"      # Neither transition nor refine applied
    ATTEMPT_LIMIT = "attempt_limit"      # Hard invocation cap reached
    RETRY_LIMIT = "retry_limit"          # Stage errors exhausted the retry budget


class WorkflowRunResult(BaseModel):
    """Structured outcome of one workflow run."""

    success: bool
    state: EngineState
    stop_reason: StopReason
    outputs: dict[str, Any] = Field(default_factory=dict)
    messages: list[Message] = Field(default_factory=list)
    attempts: int = 0
    retry_count: int = 0
    last_error: str | None = None

    @model_validator(mode="after")
    def _terminal_state_only(self) -> "WorkflowRunResult":
        if self.state not in (EngineState.COMPLETED, EngineState.FAILED):
            raise ValueError(f"run result must be terminal, got {self.state.value}")
        return self

    def raise_for_status(self) -> None:
        """Raise RetryLimitReached if the run failed on its retry budget."""
        if self.state == EngineState.FAILED:
            raise RetryLimitReached(self.outputs, self.retry_count, self.last_error)
