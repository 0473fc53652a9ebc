"""Helpers for streaming tests.

Builds SSE lines from plain dicts and provides a scripted fragment source that
records how many lines were read and whether the transport was released.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ...base.cancellation import CancellationToken
from ...base.logging import LogContext
from ...base.streaming import StreamHandle, StreamMergeEngine


def sse(obj: Any) -> str:
    """Render one ``data:`` line."""
    return "data: " + (obj if isinstance(obj, str) else json.dumps(obj))


DONE = "data: [DONE]"


def delta_chunk(
    content: Optional[str] = None,
    *,
    index: int = 0,
    role: Optional[str] = None,
    finish_reason: Optional[str] = None,
    tool_calls: Optional[List[Dict[str, Any]]] = None,
    usage: Optional[Dict[str, int]] = None,
    chunk_id: str = "chatcmpl-s1",
    model: str = "test-model",
) -> Dict[str, Any]:
    delta: Dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    chunk: Dict[str, Any] = {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": model,
        "choices": [{"index": index, "delta": delta, "finish_reason": finish_reason}],
    }
    if usage is not None:
        chunk["usage"] = usage
    return chunk


def usage_chunk(prompt: int, completion: int) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-s1",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "test-model",
        "choices": [],
        "usage": {"prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": prompt + completion},
    }


class ScriptedFragments:
    """Line iterator standing in for a streaming transport body.

    ``lines`` are served in order. With ``endless=True`` the last line repeats
    forever, which lets backpressure and cancellation tests run without an
    end-of-stream sentinel. ``raise_at`` raises ``error`` instead of serving
    the line at that position.
    """

    def __init__(
        self,
        lines: Iterable[str],
        *,
        endless: bool = False,
        raise_at: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self._lines = list(lines)
        self._endless = endless
        self._raise_at = raise_at
        self._error = error
        self._lock = threading.Lock()
        self.reads = 0
        self.closed = False
        self.close_calls = 0

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        with self._lock:
            pos = self.reads
            if self._raise_at is not None and pos == self._raise_at:
                raise self._error or RuntimeError("scripted failure")
            if pos >= len(self._lines):
                if not self._endless or not self._lines:
                    raise StopIteration
                line = self._lines[-1]
            else:
                line = self._lines[pos]
            self.reads += 1
            return line

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


def events_named(records: List[logging.LogRecord], name: str) -> List[Dict[str, Any]]:
    """Decode captured ``log_event`` payloads with ``event == name``."""
    out = []
    for r in records:
        try:
            payload = json.loads(r.getMessage())
        except ValueError:
            continue
        if isinstance(payload, dict) and payload.get("event") == name:
            out.append(payload)
    return out


def make_engine(
    fragments: ScriptedFragments,
    *,
    token: Optional[CancellationToken] = None,
    vendor: str = "fake",
    model: str = "test-model",
) -> StreamMergeEngine:
    return StreamMergeEngine(
        ctx=LogContext(vendor=vendor, model=model),
        token=token,
        on_close=fragments.close,
    )


def make_handle(fragments: ScriptedFragments, *, capacity: Optional[int] = None) -> StreamHandle:
    return StreamHandle(make_engine(fragments), fragments, capacity=capacity)


__all__ = [
    "sse",
    "DONE",
    "delta_chunk",
    "usage_chunk",
    "ScriptedFragments",
    "events_named",
    "make_engine",
    "make_handle",
]
