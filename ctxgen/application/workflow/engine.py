"""Workflow engine - drives stages through the transition table.

Each iteration runs the current stage, scores its output, logs a message,
and then either advances to the next stage, retries the same stage, or
stops. Two limits bound every run:

- ``retry_limit``: shared by refine retries and stage-error retries
- ``len(agents) * 2``: hard cap on stage invocations
"""

import logging
from typing import Any

from ctxgen.application.workflow.coordinator import WorkflowCoordinator
from ctxgen.application.workflow.intent_resolver import IntentResolver
from ctxgen.application.workflow.stages import AgentStage
from ctxgen.application.workflow.transitions import EngineEvent, EngineTransitionTable
from ctxgen.domain.constants import COORDINATOR_NAME
from ctxgen.domain.events import WorkflowEventEmitter, WorkflowEventType
from ctxgen.domain.models.message import Message, MessageType
from ctxgen.domain.models.workflow import (
    EngineState,
    ExecutionContext,
    Intent,
    IntentAction,
    StopReason,
    WorkflowConfig,
    WorkflowRunResult,
)

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Runs a bounded, retryable sequence of stages.

    Args:
        stage: Executes a named stage
        resolver: Intent resolver; defaults to one whose sequence is the
            run's configured agents
        coordinator: Message log shared by the stages
        event_emitter: Receives stage and workflow events
    """

    def __init__(
        self,
        stage: AgentStage,
        *,
        resolver: IntentResolver | None = None,
        coordinator: WorkflowCoordinator | None = None,
        event_emitter: WorkflowEventEmitter | None = None,
    ) -> None:
        self.stage = stage
        self.resolver = resolver
        self.coordinator = coordinator or WorkflowCoordinator()
        self.event_emitter = event_emitter or WorkflowEventEmitter()
        self.state = EngineState.IDLE

    def run(
        self,
        config: WorkflowConfig,
        context: ExecutionContext | None = None,
        initial_agent: str | None = None,
    ) -> WorkflowRunResult:
        """Run the workflow to a terminal state.

        Args:
            config: Stage sequence and limits
            context: Starting context (user prompt, prior outputs)
            initial_agent: First stage to run (default: first configured agent)

        Returns:
            WorkflowRunResult in state COMPLETED or FAILED

        Raises:
            ValueError: If initial_agent is not one of config.agents
        """
        if initial_agent is not None and initial_agent not in config.agents:
            raise ValueError(
                f"Unknown start agent '{initial_agent}'. Configured agents: {', '.join(config.agents)}"
            )

        resolver = self.resolver or IntentResolver(config.agents)
        context = context or ExecutionContext()
        current = initial_agent or config.agents[0]

        for name in config.agents:
            self.coordinator.register_agent(name)
        first_message = len(self.coordinator.history())

        outputs: dict[str, Any] = dict(context.previous_outputs)
        retry_count = min(context.retry_count, config.retry_limit)
        attempts = 0
        last_error: str | None = None

        self.state = EngineState.IDLE
        self._fire(EngineEvent.START)
        logger.info(f"Workflow started at {current} ({len(config.agents)} agents, retry limit {config.retry_limit})")

        while True:
            if attempts >= config.max_attempts:
                logger.warning(f"Workflow stopped after {attempts} stage invocations")
                stop_reason = StopReason.ATTEMPT_LIMIT
                self._fire(EngineEvent.FINISH)
                break
            if self.state != EngineState.EXECUTING:
                self._fire(EngineEvent.RESUME)

            attempts += 1
            stage_context = context.evolve(previous_outputs=outputs, retry_count=retry_count)
            self.event_emitter.publish(WorkflowEventType.STAGE_STARTED, agent=current, attempt=attempts)

            try:
                output = self.stage.execute(current, stage_context)
            except Exception as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"Stage {current} failed (attempt {attempts}): {last_error}")
                self.coordinator.send(
                    Message(
                        sender=current,
                        recipient=COORDINATOR_NAME,
                        type=MessageType.ERROR,
                        payload={"error": last_error, "retry_count": retry_count},
                    )
                )
                self.event_emitter.publish(
                    WorkflowEventType.STAGE_FAILED,
                    agent=current,
                    attempt=attempts,
                    error=last_error,
                )
                if retry_count < config.retry_limit:
                    retry_count += 1
                    self._retry(current, attempts, retry_count)
                    continue
                stop_reason = StopReason.RETRY_LIMIT
                self._fire(EngineEvent.FAIL)
                break

            outputs[current] = output
            intent = resolver.analyze(output, stage_context)
            self.coordinator.send(
                Message(
                    sender=current,
                    recipient=COORDINATOR_NAME,
                    type=MessageType.COMPLETION,
                    payload={"output": output, "intent": intent.model_dump(mode="json")},
                )
            )
            self.event_emitter.publish(
                WorkflowEventType.STAGE_COMPLETED,
                agent=current,
                attempt=attempts,
                action=intent.action.value,
                confidence=intent.confidence,
            )

            # Decisions see the output just produced
            decision_context = stage_context.evolve(previous_outputs=outputs)

            if config.enable_auto_transition and resolver.should_trigger_next_agent(intent, decision_context):
                next_agent = resolver.next_agent(intent, decision_context)
                if next_agent is not None and next_agent not in config.agents:
                    logger.info(f"Resolver proposed unconfigured agent {next_agent}; stopping")
                    next_agent = None
                if next_agent is None:
                    stop_reason = StopReason.ALL_STAGES_DONE
                    self._fire(EngineEvent.FINISH)
                    break

                starter_prompt = resolver.create_starter_prompt(intent, decision_context)
                context = context.evolve(user_prompt=starter_prompt, previous_outputs=outputs)
                self._send_request(current, next_agent, starter_prompt, intent)
                self.event_emitter.publish(
                    WorkflowEventType.STAGE_TRANSITIONED,
                    agent=current,
                    attempt=attempts,
                    next_agent=next_agent,
                )
                self._fire(EngineEvent.ADVANCE)
                current = next_agent
                continue

            if intent.action == IntentAction.REFINE and retry_count < config.retry_limit:
                retry_count += 1
                context = context.evolve(
                    user_prompt=" ".join(intent.next_steps) or "Please refine the output",
                    previous_outputs=outputs,
                )
                self._retry(current, attempts, retry_count)
                continue

            stop_reason = StopReason.NO_TRANSITION
            self._fire(EngineEvent.FINISH)
            break

        result = WorkflowRunResult(
            success=bool(outputs),
            state=self.state,
            stop_reason=stop_reason,
            outputs=outputs,
            messages=self.coordinator.history()[first_message:],
            attempts=attempts,
            retry_count=retry_count,
            last_error=last_error if self.state == EngineState.FAILED else None,
        )
        self._publish_finished(result)
        return result

    def _fire(self, event: EngineEvent) -> None:
        self.state = EngineTransitionTable.apply(self.state, event)

    def _retry(self, agent: str, attempt: int, retry_count: int) -> None:
        logger.info(f"Retrying {agent} (retry {retry_count})")
        self._fire(EngineEvent.RETRY)
        self.event_emitter.publish(
            WorkflowEventType.STAGE_RETRYING,
            agent=agent,
            attempt=attempt,
            retry_count=retry_count,
        )

    def _send_request(self, sender: str, recipient: str, starter_prompt: str, intent: Intent) -> None:
        self.coordinator.send(
            Message(
                sender=sender,
                recipient=recipient,
                type=MessageType.REQUEST,
                payload={"starter_prompt": starter_prompt, "intent": intent.model_dump(mode="json")},
            )
        )

    def _publish_finished(self, result: WorkflowRunResult) -> None:
        if result.state == EngineState.FAILED:
            logger.error(f"Workflow failed: {result.stop_reason.value} ({result.last_error})")
            self.event_emitter.publish(
                WorkflowEventType.WORKFLOW_FAILED,
                attempt=result.attempts,
                stop_reason=result.stop_reason.value,
                error=result.last_error,
            )
            return

        logger.info(f"Workflow completed: {result.stop_reason.value} after {result.attempts} attempts")
        self.event_emitter.publish(
            WorkflowEventType.WORKFLOW_COMPLETED,
            attempt=result.attempts,
            stop_reason=result.stop_reason.value,
            stages=list(result.outputs),
        )
