"""Tests for workflow models: intents, context, config and run results."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from ctxgen.domain.errors import RetryLimitReached
from ctxgen.domain.models import (
    EngineState,
    ExecutionContext,
    Intent,
    IntentAction,
    Message,
    MessageType,
    StopReason,
    WorkflowConfig,
    WorkflowRunResult,
)


class TestIntent:
    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            Intent(action=IntentAction.CONTINUE, confidence=1.5)

    def test_frozen(self):
        intent = Intent(action=IntentAction.REFINE, confidence=0.1)
        with pytest.raises(ValidationError):
            intent.confidence = 0.9


class TestExecutionContext:
    def test_evolve_returns_new_instance(self):
        ctx = ExecutionContext(user_prompt="a")

        evolved = ctx.evolve(user_prompt="b", retry_count=1)

        assert ctx.user_prompt == "a"
        assert ctx.retry_count == 0
        assert evolved.user_prompt == "b"
        assert evolved.retry_count == 1

    def test_evolve_copies_outputs(self):
        outputs = {"A": "x"}
        ctx = ExecutionContext(previous_outputs=outputs)

        evolved = ctx.evolve(previous_outputs=outputs)
        outputs["B"] = "y"

        assert "B" not in evolved.previous_outputs

    def test_evolve_without_outputs_does_not_share_dict(self):
        ctx = ExecutionContext(previous_outputs={"A": "x"})

        evolved = ctx.evolve(user_prompt="p")

        assert evolved.previous_outputs == {"A": "x"}
        assert evolved.previous_outputs is not ctx.previous_outputs

    def test_negative_retry_count_rejected(self):
        with pytest.raises(ValidationError):
            ExecutionContext(retry_count=-1)


class TestWorkflowConfig:
    def test_max_attempts_is_twice_agents(self):
        config = WorkflowConfig(agents=("A", "B", "C"))

        assert config.max_attempts == 6

    def test_agents_required(self):
        with pytest.raises(ValidationError):
            WorkflowConfig(agents=())

    def test_blank_agent_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowConfig(agents=("A", " "))

    def test_negative_retry_limit_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowConfig(agents=("A",), retry_limit=-1)


class TestWorkflowRunResult:
    def test_non_terminal_state_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowRunResult(
                success=False,
                state=EngineState.EXECUTING,
                stop_reason=StopReason.NO_TRANSITION,
            )

    def test_raise_for_status_on_failed_run(self):
        result = WorkflowRunResult(
            success=True,
            state=EngineState.FAILED,
            stop_reason=StopReason.RETRY_LIMIT,
            outputs={"A": "partial"},
            retry_count=2,
            last_error="boom",
        )

        with pytest.raises(RetryLimitReached) as exc_info:
            result.raise_for_status()

        assert exc_info.value.outputs == {"A": "partial"}
        assert exc_info.value.retry_count == 2

    def test_raise_for_status_noop_when_completed(self):
        result = WorkflowRunResult(
            success=False,
            state=EngineState.COMPLETED,
            stop_reason=StopReason.ATTEMPT_LIMIT,
        )

        result.raise_for_status()


class TestMessage:
    def test_aliases_from_and_to(self):
        message = Message.model_validate({"from": "A", "to": "B", "type": "request"})

        assert message.sender == "A"
        assert message.recipient == "B"
        assert message.type == MessageType.REQUEST

    def test_serializes_with_aliases(self):
        message = Message(
            sender="A",
            recipient="coordinator",
            type=MessageType.COMPLETION,
            timestamp=datetime(2026, 1, 2, tzinfo=timezone.utc),
        )

        data = message.model_dump(mode="json", by_alias=True)

        assert data["from"] == "A"
        assert data["to"] == "coordinator"
        assert data["type"] == "completion"

    def test_ids_are_unique(self):
        a = Message(sender="A", recipient="B", type=MessageType.REQUEST)
        b = Message(sender="A", recipient="B", type=MessageType.REQUEST)

        assert a.id != b.id
        assert a.id.startswith("msg-")

    def test_empty_sender_rejected(self):
        with pytest.raises(ValidationError):
            Message(sender="  ", recipient="B", type=MessageType.ERROR)
