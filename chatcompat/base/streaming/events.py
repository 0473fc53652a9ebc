"""Streaming event and lifecycle state primitives.

Kept apart from the engine so the consumer-facing handle, the engine and the
tests can import them without pulling in the transport layer.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import ChatError
from ..response import ChatCompletionResponse
from .chunk import StreamChunk


class StreamState(str, Enum):
    """Lifecycle of one streaming request.

    ``IDLE -> STREAMING -> {COMPLETED | ERRORED | TRUNCATED | CANCELLED}``.
    Transitions never go backwards and terminal states are final.
    """

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    TRUNCATED = "truncated"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {StreamState.COMPLETED, StreamState.ERRORED, StreamState.TRUNCATED, StreamState.CANCELLED}
)

_ALLOWED = {
    StreamState.IDLE: frozenset({StreamState.STREAMING, StreamState.ERRORED, StreamState.CANCELLED}),
    StreamState.STREAMING: _TERMINAL,
}


def can_transition(src: StreamState, dst: StreamState) -> bool:
    return dst in _ALLOWED.get(src, frozenset())


@dataclass(frozen=True)
class StreamEvent:
    """One item delivered to a stream consumer.

    Fields:
      vendor: vendor key the stream came from (may be None for ad-hoc clients)
      model: requested model
      chunk: the decoded chunk, for non-terminal events
      finish: True on the last event of the stream
      error: terminal error (``finish`` is True whenever it is set)
      response: merged response on successful completion
    """

    vendor: Optional[str]
    model: Optional[str]
    chunk: Optional[StreamChunk] = None
    finish: bool = False
    error: Optional[ChatError] = None
    response: Optional[ChatCompletionResponse] = None

    def is_error(self) -> bool:
        return self.error is not None

    @property
    def delta(self) -> str:
        """Text increment carried by this event (``""`` when none)."""
        return self.chunk.text() if self.chunk is not None else ""


__all__ = ["StreamState", "StreamEvent", "can_transition"]
