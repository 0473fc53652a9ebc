"""Stream merge engine: raw SSE fragments in, events and a merged response out.

The engine drives one streaming request through its lifecycle::

    IDLE -> STREAMING -> {COMPLETED | ERRORED | TRUNCATED | CANCELLED}

For every fragment pulled from the transport it checks the cancellation token,
parses the SSE line, decodes the chunk, merges it into the accumulator and
yields a :class:`StreamEvent`. The stream ends successfully only on the
``[DONE]`` sentinel; transport exhaustion without it, or a transport that
reports a dropped connection by raising ``StreamTruncated``, is a truncation.

The last event always has ``finish=True`` and carries either the merged
``response`` or the terminal ``error``. The transport response is closed on
every terminal transition, including when the consumer abandons the generator.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from ..cancellation import CancellationToken
from ..errors import (
    ChatError,
    ErrorCode,
    StreamCancelled,
    StreamTruncated,
    TransportError,
    classify_exception,
)
from ..logging import LogContext, get_logger, normalized_log_event
from ..response import ChatCompletionResponse
from .accumulator import StreamAccumulator
from .events import StreamEvent, StreamState, can_transition
from .finalize import finalize_stream
from .metrics import StreamMetrics, apply_token_usage
from .sse import FragmentKind, decode_chunk, parse_fragment


class InvalidTransition(RuntimeError):
    """Programming error: the engine tried to leave a terminal state."""


class StreamMergeEngine:
    """Consumes fragments of one streaming request.

    Parameters:
        ctx: Shared log context (vendor, model, request id).
        token: Cancellation token checked before every fragment read.
        logger: Optional logger; defaults to ``chatcompat.streaming``.
        on_close: Callable releasing the transport; invoked exactly once on
            the first terminal transition.
    """

    def __init__(
        self,
        *,
        ctx: Optional[LogContext] = None,
        token: Optional[CancellationToken] = None,
        logger: Optional[logging.Logger] = None,
        on_close=None,
    ) -> None:
        self.ctx = ctx or LogContext()
        self.token = token or CancellationToken()
        self.accumulator = StreamAccumulator()
        self.metrics = StreamMetrics()
        self._logger = logger or get_logger("streaming")
        self._on_close = on_close
        self._state = StreamState.IDLE
        self._result: Optional[ChatCompletionResponse] = None
        self._error: Optional[ChatError] = None

    # ------------------------------------------------------------------ state
    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def result(self) -> Optional[ChatCompletionResponse]:
        """Merged response once COMPLETED, otherwise ``None``."""
        return self._result

    @property
    def error(self) -> Optional[ChatError]:
        return self._error

    def _transition(self, dst: StreamState) -> None:
        if not can_transition(self._state, dst):
            raise InvalidTransition(f"{self._state.value} -> {dst.value}")
        self._state = dst
        if dst.terminal:
            self.metrics.mark_end()
            self._release()

    def _release(self) -> None:
        self.token.release()
        cb, self._on_close = self._on_close, None
        if cb is None:
            return
        try:
            cb()
        except Exception as exc:  # nosec B110 - release failures must not mask the stream outcome
            normalized_log_event(
                self._logger,
                "stream.release_error",
                self.ctx,
                phase="finalize",
                attempt=None,
                emitted=None,
                tokens=None,
                level=logging.DEBUG,
                failure_class=exc.__class__.__name__,
            )

    def snapshot(self) -> ChatCompletionResponse:
        return self.accumulator.snapshot()

    # ------------------------------------------------------------------ run
    def events(self, fragments: Iterable[str]) -> Iterator[StreamEvent]:
        """Drive the stream, yielding chunk events then one terminal event."""
        if self._state is not StreamState.IDLE:
            raise InvalidTransition(f"stream already {self._state.value}")
        self.metrics.mark_start()
        normalized_log_event(
            self._logger,
            "stream.start",
            self.ctx,
            phase="start",
            attempt=None,
            emitted=False,
            tokens=None,
        )
        self._transition(StreamState.STREAMING)
        iterator = iter(fragments)
        try:
            while True:
                if self.token.cancelled:
                    yield self._fail(StreamState.CANCELLED, self._cancelled_error())
                    return
                try:
                    raw = next(iterator)
                except StopIteration:
                    break
                self.metrics.fragments_read += 1
                frag = parse_fragment(raw)
                if frag.kind is FragmentKind.SKIP:
                    continue
                if frag.kind is FragmentKind.DONE:
                    yield self._complete()
                    return
                chunk = decode_chunk(frag.payload, vendor=self.ctx.vendor, model=self.ctx.model)
                self.accumulator.merge(chunk)
                self.metrics.record_chunk()
                if self._logger.isEnabledFor(logging.DEBUG):
                    normalized_log_event(
                        self._logger,
                        "stream.chunk",
                        self.ctx,
                        phase="mid_stream",
                        attempt=None,
                        emitted=True,
                        tokens=None,
                        level=logging.DEBUG,
                        chunk=frag.payload,
                    )
                yield StreamEvent(vendor=self.ctx.vendor, model=self.ctx.model, chunk=chunk)
            truncated = StreamTruncated(partial=self.snapshot(), vendor=self.ctx.vendor, model=self.ctx.model)
            yield self._fail(StreamState.TRUNCATED, truncated)
        except StreamTruncated as exc:
            truncated = StreamTruncated(
                partial=self.snapshot(), vendor=self.ctx.vendor, model=self.ctx.model, raw=exc.raw or exc
            )
            yield self._fail(StreamState.TRUNCATED, truncated)
        except ChatError as exc:
            yield self._fail(StreamState.ERRORED, exc)
        except Exception as exc:
            yield self._fail(StreamState.ERRORED, self._wrap(exc))
        finally:
            # consumer abandoned the generator (close / GC) while streaming
            if not self._state.terminal:
                self._state = StreamState.CANCELLED
                self.metrics.mark_end()
                self._error = self._cancelled_error()
                self._release()

    # ------------------------------------------------------------------ terminal helpers
    def _complete(self) -> StreamEvent:
        self._result = self.snapshot()
        apply_token_usage(self.metrics, self._result.usage)
        self.ctx.response_id = self.ctx.response_id or (self._result.id or None)
        self._transition(StreamState.COMPLETED)
        return finalize_stream(
            logger=self._logger,
            ctx=self.ctx,
            state=self._state,
            metrics=self.metrics,
            response=self._result,
        )

    def _fail(self, state: StreamState, error: ChatError) -> StreamEvent:
        self._error = error
        apply_token_usage(self.metrics, self.accumulator.usage)
        self._transition(state)
        return finalize_stream(
            logger=self._logger,
            ctx=self.ctx,
            state=self._state,
            metrics=self.metrics,
            error=error,
        )

    def _cancelled_error(self) -> StreamCancelled:
        return StreamCancelled(
            self.token.reason or "consumer closed the stream",
            vendor=self.ctx.vendor,
            model=self.ctx.model,
        )

    def _wrap(self, exc: Exception) -> ChatError:
        code = classify_exception(exc)
        return TransportError(
            f"stream failed: {exc.__class__.__name__}: {exc}",
            code=code if code is not ErrorCode.UNKNOWN else ErrorCode.TRANSIENT,
            vendor=self.ctx.vendor,
            model=self.ctx.model,
            raw=exc,
        )


__all__ = ["StreamMergeEngine", "InvalidTransition"]
