from typing import Any, Literal
from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: Literal["generate", "component", "refine", "providers", "workflow", "history"]
    exit_code: int
    error: str | None = None


class FailedAttempt(BaseModel):
    """One provider attempt that failed during failover."""
    provider: str
    kind: str
    message: str = ""


class GenerateOutput(BaseOutput):
    command: Literal["generate"] = "generate"
    provider: str | None = None
    text: str | None = None
    elapsed_ms: int | None = None
    # Populated when every provider failed (exit code 2)
    attempts: list[FailedAttempt] = Field(default_factory=list)


class ComponentOutput(BaseOutput):
    command: Literal["component", "refine"] = "component"
    provider: str | None = None
    code: str | None = None
    explanation: str | None = None
    was_truncated: bool = False
    output_path: str | None = None
    attempts: list[FailedAttempt] = Field(default_factory=list)


class ProviderStatusSummary(BaseModel):
    """Availability of a configured provider."""
    name: str
    priority: int
    available: bool
    description: str = ""


class ProvidersOutput(BaseOutput):
    command: Literal["providers"] = "providers"
    providers: list[ProviderStatusSummary] = Field(default_factory=list)
    active: str | None = None
    # Registered adapter keys (--adapters)
    adapters: list[str] = Field(default_factory=list)


class WorkflowOutput(BaseOutput):
    command: Literal["workflow"] = "workflow"
    success: bool = False
    state: str | None = None
    stop_reason: str | None = None
    attempts: int = 0
    retry_count: int = 0
    stages: list[str] = Field(default_factory=list)
    outputs: dict[str, Any] = Field(default_factory=dict)
    last_error: str | None = None


class MessageSummary(BaseModel):
    """One logged inter-stage message."""
    id: str
    sender: str
    recipient: str
    type: str
    timestamp: str | None = None


class HistoryOutput(BaseOutput):
    command: Literal["history"] = "history"
    date: str
    messages: list[MessageSummary] = Field(default_factory=list)
    total: int = 0
    days: list[str] = Field(default_factory=list)
