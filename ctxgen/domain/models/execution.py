"""Provider execution value objects."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ctxgen.domain.errors import FailureKind
from ctxgen.domain.models.parsed_payload import ParsedPayload


class ExecutionOptions(BaseModel):
    """Per-call generation options passed through to the provider adapter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    temperature: float | None = None
    max_tokens: int | None = None
    timeout_ms: int | None = None
    model: str | None = None
    system_prompt: str | None = None

    @field_validator("timeout_ms")
    @classmethod
    def _timeout_positive(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("timeout_ms must be > 0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def _max_tokens_positive(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("max_tokens must be >= 1")
        return v


class ExecutionRequest(BaseModel):
    """A single prompt plus its options, constructed per call."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    options: ExecutionOptions = Field(default_factory=ExecutionOptions)


class ExecutionResult(BaseModel):
    """Successful provider call."""

    model_config = ConfigDict(frozen=True)

    text: str
    provider_name: str
    payload: ParsedPayload | None = None
    elapsed_ms: int = 0


class Failure(BaseModel):
    """Classified failure of one provider attempt."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    provider_name: str
    message: str = ""
