"""Streaming metrics data structures.

One :class:`StreamMetrics` instance is filled by the merge engine for each
streaming request and reported once, in the finalize log event.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..response import Usage


@dataclass
class StreamMetrics:
    """Collected metrics for a single streaming request.

    Attributes:
        emitted: Number of chunk events delivered (sentinel and skipped lines
            excluded).
        fragments_read: Raw lines pulled from the transport.
        time_to_first_chunk_ms: Delay between stream start and the first
            decoded chunk.
        total_duration_ms: Start to terminal transition.
        prompt_tokens / completion_tokens / total_tokens: Copied from the
            final usage, when the vendor sent one.
    """

    emitted: int = 0
    fragments_read: int = 0
    time_to_first_chunk_ms: Optional[float] = None
    total_duration_ms: Optional[float] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    tokens: Optional[Dict[str, Any]] = None
    _t0: float = field(default_factory=time.perf_counter, repr=False)

    def mark_start(self) -> None:
        self._t0 = time.perf_counter()

    def record_chunk(self) -> None:
        if self.emitted == 0:
            self.time_to_first_chunk_ms = (time.perf_counter() - self._t0) * 1000.0
        self.emitted += 1

    def mark_end(self) -> None:
        self.total_duration_ms = (time.perf_counter() - self._t0) * 1000.0


def build_token_usage(prompt: Optional[int], completion: Optional[int], total: Optional[int] = None) -> Dict[str, Optional[int]]:
    """Return a canonical token usage mapping."""
    derived_total = total
    if derived_total is None and (prompt is not None and completion is not None):
        derived_total = prompt + completion
    return {"prompt": prompt, "completion": completion, "total": derived_total}


def apply_token_usage(metrics: StreamMetrics, usage: Optional[Usage]) -> None:
    """Populate token usage fields on ``metrics`` from a vendor usage block."""
    if usage is None:
        return
    metrics.prompt_tokens = usage.prompt_tokens
    metrics.completion_tokens = usage.completion_tokens
    metrics.total_tokens = usage.total_tokens or (usage.prompt_tokens + usage.completion_tokens)
    metrics.tokens = build_token_usage(metrics.prompt_tokens, metrics.completion_tokens, metrics.total_tokens)


def validate_token_usage(
    metrics: StreamMetrics,
    *,
    raise_on_error: bool = False,
) -> Tuple[bool, Optional[str]]:
    """Validate token usage fields for internal consistency."""

    def _fail(reason: str) -> Tuple[bool, Optional[str]]:
        if raise_on_error:
            raise ValueError(f"token usage invalid: {reason}")
        return False, reason

    for name, value in (
        ("prompt_tokens", metrics.prompt_tokens),
        ("completion_tokens", metrics.completion_tokens),
        ("total_tokens", metrics.total_tokens),
    ):
        if value is not None and value < 0:
            return _fail(f"{name} negative: {value}")

    if (
        metrics.prompt_tokens is not None
        and metrics.completion_tokens is not None
        and metrics.total_tokens is not None
    ) and metrics.prompt_tokens + metrics.completion_tokens != metrics.total_tokens:
        return _fail("total_tokens mismatch: expected prompt+completion == total")

    return True, None


__all__ = [
    "StreamMetrics",
    "apply_token_usage",
    "build_token_usage",
    "validate_token_usage",
]
