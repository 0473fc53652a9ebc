"""Decoded envelope of one streamed fragment.

A ``StreamChunk`` has the shape of a non-streaming response with ``delta`` in
place of ``message`` inside each choice. Every field of a delta is optional;
an empty delta is legal and merges as a no-op.
"""
from __future__ import annotations

from typing import Any, Optional, Tuple

from pydantic import BaseModel, field_validator

from ..response import Usage
from ..schema.validation import FROZEN


class FunctionCallDelta(BaseModel):
    model_config = FROZEN

    name: Optional[str] = None
    arguments: Optional[str] = None


class ToolCallDelta(BaseModel):
    """Increment of one tool call, addressed by ``index`` within its choice."""

    model_config = FROZEN

    index: Optional[int] = None
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[FunctionCallDelta] = None


class StreamDelta(BaseModel):
    model_config = FROZEN

    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[Tuple[ToolCallDelta, ...]] = None
    refusal: Optional[str] = None
    reasoning_content: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def _blank_role(cls, value: Any) -> Any:
        return None if value == "" else value

    def is_empty(self) -> bool:
        return (
            self.role is None
            and not self.content
            and not self.tool_calls
            and not self.refusal
            and not self.reasoning_content
        )


class StreamChoice(BaseModel):
    model_config = FROZEN

    index: int = 0
    delta: StreamDelta = StreamDelta()
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None

    @field_validator("delta", mode="before")
    @classmethod
    def _null_delta(cls, value: Any) -> Any:
        return {} if value is None else value


class StreamChunk(BaseModel):
    model_config = FROZEN

    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: Tuple[StreamChoice, ...] = ()
    usage: Optional[Usage] = None
    system_fingerprint: Optional[str] = None

    @field_validator("choices", mode="before")
    @classmethod
    def _null_choices(cls, value: Any) -> Any:
        return () if value is None else value

    def text(self) -> str:
        """Concatenated content increments of every choice in this chunk."""
        return "".join(c.delta.content or "" for c in self.choices)


__all__ = [
    "FunctionCallDelta",
    "ToolCallDelta",
    "StreamDelta",
    "StreamChoice",
    "StreamChunk",
]
