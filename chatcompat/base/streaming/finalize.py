"""Finalize stream helper.

Creates the terminal :class:`StreamEvent` and emits the single consolidated
``stream.end`` / ``stream.error`` log event carrying the stream metrics.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import ChatError
from ..logging import LogContext, normalized_log_event
from ..response import ChatCompletionResponse
from .events import StreamEvent, StreamState
from .metrics import StreamMetrics, build_token_usage, validate_token_usage


def finalize_stream(
    *,
    logger: logging.Logger,
    ctx: LogContext,
    state: StreamState,
    metrics: StreamMetrics,
    response: Optional[ChatCompletionResponse] = None,
    error: Optional[ChatError] = None,
) -> StreamEvent:
    """Create the terminal event and log the outcome of the stream."""
    if metrics.tokens is not None:
        tokens_payload: Dict[str, Any] = metrics.tokens
    else:
        tokens_payload = build_token_usage(metrics.prompt_tokens, metrics.completion_tokens, metrics.total_tokens)
    _, usage_issue = validate_token_usage(metrics)

    normalized_log_event(
        logger,
        "stream.end" if error is None else "stream.error",
        ctx,
        phase="finalize",
        attempt=None,
        emitted=metrics.emitted > 0,
        tokens=tokens_payload,
        error_code=error.code.value if error is not None else None,
        level=logging.INFO if error is None or state is StreamState.CANCELLED else logging.WARNING,
        state=state.value,
        emitted_count=metrics.emitted,
        fragments_read=metrics.fragments_read,
        time_to_first_chunk_ms=metrics.time_to_first_chunk_ms,
        total_duration_ms=metrics.total_duration_ms,
        usage_issue=usage_issue,
        error=error.message[:260] if error is not None else None,
    )
    return StreamEvent(
        vendor=ctx.vendor,
        model=ctx.model,
        chunk=None,
        finish=True,
        error=error,
        response=response if error is None else None,
    )


__all__ = ["finalize_stream"]
