"""Declarative state transitions for the workflow engine.

Key concepts:
- (state, event) -> TransitionResult
- EXECUTING is the only state that runs a stage
- TRANSITIONING and RETRYING resume into EXECUTING, or finish when the
  attempt cap is reached
- COMPLETED and FAILED are terminal: no events are valid from them
"""

from dataclasses import dataclass
from enum import Enum

from ctxgen.domain.errors import InvalidTransition
from ctxgen.domain.models.workflow import EngineState


class EngineEvent(str, Enum):
    """Events that drive the engine between states."""

    START = "start"        # Run begins
    ADVANCE = "advance"    # Stage output accepted, move to the next stage
    RETRY = "retry"        # Re-run the same stage (refine intent or stage error)
    RESUME = "resume"      # Execute the current stage
    FINISH = "finish"      # Stop successfully
    FAIL = "fail"          # Retry budget exhausted on stage errors


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Result of a state transition.

    Attributes:
        state: Target engine state
        terminal: True when no further events are accepted
    """

    state: EngineState
    terminal: bool = False


_TransitionKey = tuple[EngineState, EngineEvent]


class EngineTransitionTable:
    """Declarative state machine for the workflow engine.

    Usage:
        state = EngineTransitionTable.apply(state, EngineEvent.START)
    """

    _COMPLETED = TransitionResult(EngineState.COMPLETED, terminal=True)
    _FAILED = TransitionResult(EngineState.FAILED, terminal=True)

    _TRANSITIONS: dict[_TransitionKey, TransitionResult] = {
        # === IDLE ===
        (EngineState.IDLE, EngineEvent.START): TransitionResult(EngineState.EXECUTING),

        # === EXECUTING ===
        (EngineState.EXECUTING, EngineEvent.ADVANCE): TransitionResult(EngineState.TRANSITIONING),
        (EngineState.EXECUTING, EngineEvent.RETRY): TransitionResult(EngineState.RETRYING),
        (EngineState.EXECUTING, EngineEvent.FINISH): _COMPLETED,
        (EngineState.EXECUTING, EngineEvent.FAIL): _FAILED,

        # === TRANSITIONING ===
        (EngineState.TRANSITIONING, EngineEvent.RESUME): TransitionResult(EngineState.EXECUTING),
        (EngineState.TRANSITIONING, EngineEvent.FINISH): _COMPLETED,

        # === RETRYING ===
        (EngineState.RETRYING, EngineEvent.RESUME): TransitionResult(EngineState.EXECUTING),
        (EngineState.RETRYING, EngineEvent.FINISH): _COMPLETED,
    }

    @classmethod
    def get_transition(cls, state: EngineState, event: EngineEvent) -> TransitionResult | None:
        """Get the transition for an event from the current state, or None if invalid."""
        return cls._TRANSITIONS.get((state, event))

    @classmethod
    def apply(cls, state: EngineState, event: EngineEvent) -> EngineState:
        """Return the next state.

        Raises:
            InvalidTransition: If the event is not valid from ``state``
        """
        result = cls.get_transition(state, event)
        if result is None:
            raise InvalidTransition(state.value, event.value)
        return result.state

    @classmethod
    def valid_events(cls, state: EngineState) -> list[EngineEvent]:
        """List events valid from the given state."""
        return [e for (s, e) in cls._TRANSITIONS if s == state]
