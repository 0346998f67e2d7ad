"""Heuristic scoring of stage output into workflow intents."""

import logging
from collections.abc import Mapping
from typing import Any, Sequence

from ctxgen.application.config_models import IntentThresholds
from ctxgen.domain.constants import DEFAULT_AGENT_SEQUENCE
from ctxgen.domain.models.workflow import ExecutionContext, Intent, IntentAction

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


def score_output(output: Any) -> float:
    """Confidence in [0, 1] from the shape of a stage's output.

    This measures structure and length, not correctness.
    """
    if not output:
        return 0.0

    if isinstance(output, str):
        score = 0.5
        if "\n" in output or "```" in output:
            score += 0.2
        if len(output) > 100:
            score += 0.2
        if len(output) > 500:
            score += 0.1
        return min(score, 1.0)

    if isinstance(output, Mapping):
        score = 0.6
        if "code" in output:
            score += 0.2
        if "metadata" in output:
            score += 0.1
        if len(output) > 3:
            score += 0.1
        return min(score, 1.0)

    return 0.5


class IntentResolver:
    """Turns stage output into continue / refine / complete decisions.

    Args:
        sequence: Fixed stage order used to pick the next stage
        thresholds: Confidence cutoffs (defaults: refine < 0.3,
            complete > 0.8, auto-transition on continue > 0.6)
    """

    def __init__(
        self,
        sequence: Sequence[str] = DEFAULT_AGENT_SEQUENCE,
        thresholds: IntentThresholds | None = None,
    ) -> None:
        self.sequence = tuple(sequence)
        self.thresholds = thresholds or IntentThresholds()

    def analyze(self, output: Any, context: ExecutionContext) -> Intent:
        confidence = round(score_output(output), 4)

        if confidence < self.thresholds.refine_below:
            return Intent(
                action=IntentAction.REFINE,
                confidence=confidence,
                reason="Output quality below threshold",
                next_steps=("Improve output quality", "Add missing details"),
            )

        if confidence > self.thresholds.complete_above:
            return Intent(
                action=IntentAction.COMPLETE,
                confidence=confidence,
                reason="High quality output achieved",
                next_steps=("Proceed to next stage",),
            )

        return Intent(
            action=IntentAction.CONTINUE,
            confidence=confidence,
            reason="Acceptable output, continue workflow",
            next_steps=("Continue to next agent",),
        )

    def should_trigger_next_agent(self, intent: Intent, context: ExecutionContext) -> bool:
        if intent.action == IntentAction.COMPLETE:
            return True
        return intent.action == IntentAction.CONTINUE and intent.confidence > self.thresholds.transition_above

    def next_agent(self, intent: Intent, context: ExecutionContext) -> str | None:
        """First stage in the sequence without an output yet, or None when all are done."""
        for agent in self.sequence:
            if agent not in context.previous_outputs:
                return agent
        return None

    def create_starter_prompt(self, intent: Intent, context: ExecutionContext) -> str:
        """Prompt for the next stage, built from the user prompt and prior outputs."""
        base = context.user_prompt or "Generate high-quality output"

        if intent.action == IntentAction.REFINE:
            reason = intent.reason or "General improvements"
            return f"{base}\n\nPlease refine the previous output with these improvements:\n{reason}"

        if context.previous_outputs:
            previews = "\n".join(
                f"{agent}: {_preview(output)}"
                for agent, output in context.previous_outputs.items()
            )
            return f"{base}\n\nBuild upon previous agent outputs:\n{previews}"

        return base


def _preview(output: Any) -> str:
    if isinstance(output, str):
        return output[:PREVIEW_CHARS] + "..."
    return "Generated output"
