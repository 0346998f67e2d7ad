"""Inter-agent message model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageType(str, Enum):
    REQUEST = "request"
    COMPLETION = "completion"
    ERROR = "error"


def _new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex[:12]}"


class Message(BaseModel):
    """One entry in the coordinator's append-only message log.

    Notes:
    - ``sender``/``recipient`` serialize as ``from``/``to``.
    - ``timestamp`` is None until the coordinator stamps the message on send.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=_new_message_id)
    sender: str = Field(alias="from")
    recipient: str = Field(alias="to")
    type: MessageType
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime | None = None

    @field_validator("sender", "recipient")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("agent name must be non-empty")
        return v2
