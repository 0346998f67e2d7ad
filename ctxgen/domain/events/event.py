"""Orchestration event payload model."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from ctxgen.domain.events.event_types import WorkflowEventType


class WorkflowEvent(BaseModel):
    """Immutable event payload for orchestration notifications."""

    model_config = {"frozen": True}

    event_type: WorkflowEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    provider: str | None = None
    agent: str | None = None
    attempt: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
