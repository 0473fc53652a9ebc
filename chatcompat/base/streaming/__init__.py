"""Streaming package: SSE parsing, delta merging and threaded delivery.

Modules:
    chunk: decoded stream envelope models
    sse: fragment classification and chunk decoding
    accumulator: merge of chunks into one response
    engine: lifecycle state machine over a fragment iterator
    handle: producer thread + bounded channel facing the consumer
    metrics / finalize: per-stream metrics and the terminal log event
"""

from .accumulator import StreamAccumulator
from .chunk import FunctionCallDelta, StreamChoice, StreamChunk, StreamDelta, ToolCallDelta
from .engine import InvalidTransition, StreamMergeEngine
from .events import StreamEvent, StreamState
from .finalize import finalize_stream
from .handle import StreamHandle, channel_capacity
from .metrics import StreamMetrics
from .sse import Fragment, FragmentKind, decode_chunk, parse_fragment

__all__ = [
    "StreamAccumulator",
    "FunctionCallDelta",
    "StreamChoice",
    "StreamChunk",
    "StreamDelta",
    "ToolCallDelta",
    "InvalidTransition",
    "StreamMergeEngine",
    "StreamEvent",
    "StreamState",
    "finalize_stream",
    "StreamHandle",
    "channel_capacity",
    "StreamMetrics",
    "Fragment",
    "FragmentKind",
    "decode_chunk",
    "parse_fragment",
]
