"""Configuration models.

Config structure (.ctxgen/config.yml):
    providers:
      - name: claude-code
        priority: 0
      - name: xai
        priority: 1
        config:
          model: grok-4-fast-reasoning
      - name: hosted
        priority: 10
    default_timeout_ms: 60000
    logs_dir: .ctxgen/agent-logs
    intent:
      refine_below: 0.3
      complete_above: 0.8
      transition_above: 0.6
    workflow:
      agents: [CodeGenSubAgent, QASubAgent, DocsSubAgent]
      retry_limit: 2
      enable_auto_transition: true
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ctxgen.domain.constants import (
    DEFAULT_AGENT_SEQUENCE,
    DEFAULT_LOGS_DIR,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_TIMEOUT_MS,
)
from ctxgen.domain.models.workflow import WorkflowConfig


class ProviderEntry(BaseModel):
    """One configured backend."""

    model_config = ConfigDict(extra="forbid")

    name: str
    priority: int = 0
    enabled: bool = True
    config: dict[str, Any] = Field(default_factory=dict)


class IntentThresholds(BaseModel):
    """Confidence cutoffs for the intent resolver.

    These are uncalibrated heuristics; they are configuration rather than
    constants so they can be tuned against real outcomes.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    refine_below: float = Field(default=0.3, ge=0.0, le=1.0)
    complete_above: float = Field(default=0.8, ge=0.0, le=1.0)
    transition_above: float = Field(default=0.6, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _ordered(self) -> "IntentThresholds":
        if self.refine_below > self.complete_above:
            raise ValueError("refine_below must be <= complete_above")
        return self


class WorkflowDefaults(BaseModel):
    model_config = ConfigDict(extra="forbid")

    agents: list[str] = Field(default_factory=lambda: list(DEFAULT_AGENT_SEQUENCE))
    retry_limit: int = Field(default=DEFAULT_RETRY_LIMIT, ge=0)
    enable_auto_transition: bool = True

    def to_workflow_config(self, **overrides: Any) -> WorkflowConfig:
        """Build an immutable WorkflowConfig; None-valued overrides are ignored."""
        values = {
            "agents": tuple(self.agents),
            "retry_limit": self.retry_limit,
            "enable_auto_transition": self.enable_auto_transition,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return WorkflowConfig(**values)


class CtxgenConfig(BaseModel):
    """Top-level resolved configuration."""

    model_config = ConfigDict(extra="forbid")

    providers: list[ProviderEntry] = Field(default_factory=list)
    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    logs_dir: Path = DEFAULT_LOGS_DIR
    intent: IntentThresholds = Field(default_factory=IntentThresholds)
    workflow: WorkflowDefaults = Field(default_factory=WorkflowDefaults)

    @field_validator("providers")
    @classmethod
    def _unique_names(cls, v: list[ProviderEntry]) -> list[ProviderEntry]:
        names = [p.name for p in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate provider names: {duplicates}")
        return v

    def enabled_providers(self) -> list[ProviderEntry]:
        return [p for p in self.providers if p.enabled]
