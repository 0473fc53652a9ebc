"""Incremental merge of stream chunks into one chat completion.

Merge rules
-----------
- Choices are addressed by their ``index`` value, never by array position,
  and stored sparsely: indices may first appear in any order.
- ``content`` (plus ``refusal``/``reasoning_content``) increments are appended;
  accumulated content starts as ``""`` and is never ``None``.
- ``role`` and ``finish_reason`` are set once per choice. A later ``null`` does
  not clear them and a later different value is ignored (logged at DEBUG).
- Tool calls are addressed by their own ``index`` inside the choice. ``id``,
  ``type`` and ``function.name`` are set once (first non-empty value wins);
  ``function.arguments`` increments are appended. A tool-call delta without an
  ``index`` is addressed by its position in the delta's list.
- ``usage`` (top-level or per-choice) replaces the previous value.
- ``id``, ``model``, ``created`` and ``system_fingerprint``: first non-empty
  value wins.

Ownership
---------
An accumulator is owned by exactly one producer (the merge engine's thread).
It is not thread-safe. Consumers only ever see the immutable values returned
by :meth:`StreamAccumulator.snapshot`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..logging import get_logger, log_event
from ..response import ChatCompletionResponse, Usage
from ..schema import Role
from .chunk import StreamChoice, StreamChunk, ToolCallDelta

_logger = get_logger("streaming.accumulator")


@dataclass
class _ToolCallState:
    index: int
    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type or "function",
            "function": {"name": self.name or "", "arguments": self.arguments},
        }


@dataclass
class _ChoiceState:
    index: int
    role: Optional[Role] = None
    content: str = ""
    refusal: Optional[str] = None
    reasoning_content: Optional[str] = None
    finish_reason: Optional[str] = None
    tool_calls: Dict[int, _ToolCallState] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "role": self.role,
            "content": self.content,
            "refusal": self.refusal,
            "reasoning_content": self.reasoning_content,
        }
        if self.tool_calls:
            message["tool_calls"] = [self.tool_calls[i].to_dict() for i in sorted(self.tool_calls)]
        return {"index": self.index, "message": message, "finish_reason": self.finish_reason}


def _set_once(current: Optional[Any], new: Optional[Any], *, field_name: str, index: int) -> Optional[Any]:
    """Return the value a set-once field should hold after seeing ``new``."""
    if new is None or new == "":
        return current
    if current is None:
        return new
    if new != current:
        log_event(
            _logger,
            "stream.merge.conflict",
            level=logging.DEBUG,
            field=field_name,
            index=index,
            kept=current,
            ignored=new,
        )
    return current


class StreamAccumulator:
    """Mutable, in-progress chat completion built from stream chunks."""

    def __init__(self) -> None:
        self.id: Optional[str] = None
        self.model: Optional[str] = None
        self.created: Optional[int] = None
        self.system_fingerprint: Optional[str] = None
        self.usage: Optional[Usage] = None
        self.chunks_merged = 0
        self._choices: Dict[int, _ChoiceState] = {}

    # ------------------------------------------------------------------ merge
    def merge(self, chunk: StreamChunk) -> None:
        """Fold one decoded chunk into the accumulated state."""
        self.chunks_merged += 1
        if not self.id and chunk.id:
            self.id = chunk.id
        if not self.model and chunk.model:
            self.model = chunk.model
        if not self.created and chunk.created:
            self.created = chunk.created
        if not self.system_fingerprint and chunk.system_fingerprint:
            self.system_fingerprint = chunk.system_fingerprint
        if chunk.usage is not None:
            self.usage = chunk.usage
        for choice in chunk.choices:
            self._merge_choice(choice)

    def _merge_choice(self, choice: StreamChoice) -> None:
        state = self._choices.get(choice.index)
        if state is None:
            state = self._choices[choice.index] = _ChoiceState(index=choice.index)
        delta = choice.delta

        if delta.role is not None:
            try:
                role: Optional[Role] = Role(delta.role)
            except ValueError:
                log_event(_logger, "stream.merge.unknown_role", level=logging.DEBUG, role=delta.role, index=state.index)
                role = None
            state.role = _set_once(state.role, role, field_name="role", index=state.index)

        if delta.content:
            state.content += delta.content
        if delta.refusal:
            state.refusal = (state.refusal or "") + delta.refusal
        if delta.reasoning_content:
            state.reasoning_content = (state.reasoning_content or "") + delta.reasoning_content

        for position, tc in enumerate(delta.tool_calls or ()):
            self._merge_tool_call(state, tc, position)

        state.finish_reason = _set_once(
            state.finish_reason, choice.finish_reason, field_name="finish_reason", index=state.index
        )
        if choice.usage is not None:
            self.usage = choice.usage

    @staticmethod
    def _merge_tool_call(state: _ChoiceState, tc: ToolCallDelta, position: int) -> None:
        index = tc.index if tc.index is not None else position
        call = state.tool_calls.get(index)
        if call is None:
            call = state.tool_calls[index] = _ToolCallState(index=index)
        call.id = _set_once(call.id, tc.id, field_name="tool_calls.id", index=index)
        call.type = _set_once(call.type, tc.type, field_name="tool_calls.type", index=index)
        if tc.function is not None:
            call.name = _set_once(call.name, tc.function.name, field_name="tool_calls.function.name", index=index)
            if tc.function.arguments:
                call.arguments += tc.function.arguments

    # ------------------------------------------------------------------ views
    def content(self, index: int = 0) -> str:
        state = self._choices.get(index)
        return state.content if state is not None else ""

    def finish_reason(self, index: int = 0) -> Optional[str]:
        state = self._choices.get(index)
        return state.finish_reason if state is not None else None

    def snapshot(self) -> ChatCompletionResponse:
        """Return an immutable view of everything merged so far."""
        return ChatCompletionResponse.model_validate(
            {
                "id": self.id or "",
                "object": "chat.completion",
                "created": self.created or 0,
                "model": self.model or "",
                "choices": [self._choices[i].to_dict() for i in sorted(self._choices)],
                "usage": self.usage,
                "system_fingerprint": self.system_fingerprint,
            }
        )


__all__ = ["StreamAccumulator"]
