"""Stage execution contract and the provider-backed default."""

import logging
from typing import Any, Protocol

from ctxgen.application.providers.provider_execution_service import ProviderExecutionService
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.domain.models.workflow import ExecutionContext

logger = logging.getLogger(__name__)

STAGE_INSTRUCTIONS: dict[str, str] = {
    "CodeGenSubAgent": "Generate the code for the request below. Return complete, runnable code.",
    "QASubAgent": "Review the generated code below. List defects, risks and missing tests.",
    "DocsSubAgent": "Write concise developer documentation for the work below.",
}


class AgentStage(Protocol):
    """Runs one named stage of a workflow.

    Implementations return the stage's output (a string or a mapping) or
    raise; the engine treats any exception as a stage error.
    """

    def execute(self, agent: str, context: ExecutionContext) -> Any: ...


class ProviderBackedStage:
    """Runs every stage as a prompt against the configured providers.

    The code generation stage returns a mapping with the normalized code;
    other stages return the raw text.
    """

    CODE_STAGE = "CodeGenSubAgent"

    def __init__(
        self,
        service: ProviderExecutionService,
        *,
        options: ExecutionOptions | None = None,
        instructions: dict[str, str] | None = None,
    ) -> None:
        self.service = service
        self.options = options
        self.instructions = instructions if instructions is not None else dict(STAGE_INSTRUCTIONS)

    def build_prompt(self, agent: str, context: ExecutionContext) -> str:
        instruction = self.instructions.get(agent, f"You are {agent}. Complete your part of the task.")
        return f"{instruction}\n\n{context.user_prompt}"

    def execute(self, agent: str, context: ExecutionContext) -> Any:
        prompt = self.build_prompt(agent, context)
        logger.debug(f"Running stage {agent} (retry {context.retry_count})")

        if agent == self.CODE_STAGE:
            result = self.service.generate_component(prompt, self.options)
            payload = result.payload
            return {
                "code": payload.code if payload else result.text,
                "explanation": payload.explanation if payload else None,
                "was_truncated": payload.was_truncated if payload else False,
                "metadata": {"provider": result.provider_name, "elapsed_ms": result.elapsed_ms},
            }

        return self.service.generate_text(prompt, self.options).text
