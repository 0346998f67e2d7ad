"""Normalized model response payload."""

from pydantic import BaseModel, ConfigDict


class ParsedPayload(BaseModel):
    """Code extracted from free-form model output.

    Derived per response and never persisted. ``explanation`` holds the text
    outside the extracted code, or a warning when the response was truncated.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    explanation: str | None = None
    was_truncated: bool = False
