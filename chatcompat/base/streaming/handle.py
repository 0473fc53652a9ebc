"""Consumer-facing handle of one streaming request.

A :class:`StreamHandle` runs the :class:`StreamMergeEngine` on a dedicated
producer thread and hands events to the caller through a bounded, ordered
``queue.Queue``. The bound applies backpressure: with capacity ``N`` and a
consumer that has not started reading, the producer reads at most ``N + 1``
fragments ahead.

Closing the handle (``close()``, leaving a ``with`` block, or garbage
collection) cancels the engine's token. The producer notices before its next
transport read or while waiting for channel capacity, stops reading and
releases the transport.
"""
from __future__ import annotations

import logging
import os
import queue
import threading
from contextlib import suppress
from typing import Iterable, Iterator, Optional

from ...config.defaults import STREAM_CHANNEL_CAPACITY, STREAM_SEND_POLL_SECONDS
from ..errors import ChatError, StreamCancelled
from ..logging import get_logger, log_event
from ..response import ChatCompletionResponse
from .engine import StreamMergeEngine
from .events import StreamEvent, StreamState
from .metrics import StreamMetrics

CHANNEL_CAPACITY_ENV = "CHATCOMPAT_STREAM_CHANNEL_CAPACITY"

_logger = get_logger("streaming.handle")


def channel_capacity() -> int:
    """Return the configured channel capacity (env override, minimum 1)."""
    raw = os.getenv(CHANNEL_CAPACITY_ENV)
    if not raw:
        return STREAM_CHANNEL_CAPACITY
    try:
        return max(1, int(raw))
    except ValueError:
        return STREAM_CHANNEL_CAPACITY


def _offer(q: "queue.Queue[StreamEvent]", evt: StreamEvent, token) -> bool:
    """Put ``evt`` on the channel; return False if cancelled while waiting."""
    while not token.cancelled:
        try:
            q.put(evt, timeout=STREAM_SEND_POLL_SECONDS)
            return True
        except queue.Full:
            continue
    return False


def _produce(engine: StreamMergeEngine, fragments: Iterable[str], q: "queue.Queue[StreamEvent]") -> None:
    # holds no reference to the handle, so an abandoned handle can be collected
    events = engine.events(fragments)
    try:
        for evt in events:
            if not _offer(q, evt, engine.token):
                break
    except Exception as exc:
        log_event(
            _logger,
            "stream.producer_crash",
            level=logging.ERROR,
            error=exc.__class__.__name__,
            detail=str(exc)[:260],
        )
    finally:
        events.close()


class StreamHandle:
    """Cancellable, consumable sequence of :class:`StreamEvent`.

    Iterate to receive events as they arrive; the last one has
    ``finish=True``. :meth:`final` consumes the rest of the stream and returns
    the merged response or raises the terminal error.
    """

    def __init__(
        self,
        engine: StreamMergeEngine,
        fragments: Iterable[str],
        *,
        capacity: Optional[int] = None,
    ) -> None:
        self._engine = engine
        self._queue: "queue.Queue[StreamEvent]" = queue.Queue(maxsize=capacity or channel_capacity())
        self._terminal: Optional[StreamEvent] = None
        self._closed = False
        self._thread = threading.Thread(
            target=_produce,
            args=(engine, fragments, self._queue),
            name="chatcompat-stream",
            daemon=True,
        )
        self._thread.start()

    # ------------------------------------------------------------------ consumer
    def __iter__(self) -> Iterator[StreamEvent]:
        return self

    def __next__(self) -> StreamEvent:
        if self._terminal is not None or self._closed:
            raise StopIteration
        while True:
            try:
                evt = self._queue.get(timeout=STREAM_SEND_POLL_SECONDS)
                break
            except queue.Empty:
                if self._closed:
                    raise StopIteration from None
                if not self._thread.is_alive() and self._queue.empty():
                    # producer ended without a terminal event (cancelled or crashed)
                    raise StopIteration from None
        if evt.finish:
            self._terminal = evt
        return evt

    def final(self) -> ChatCompletionResponse:
        """Consume remaining events and return the merged response.

        Raises:
            ChatError: the terminal error of the stream (``ApiError``,
                ``StreamDecodeError``, ``StreamTruncated``, ``TransportError``).
            StreamCancelled: the handle was closed before completion.
        """
        for _ in self:
            pass
        terminal = self._terminal
        if terminal is None:
            err = self._engine.error
            raise err if isinstance(err, ChatError) else StreamCancelled("stream closed before completion")
        if terminal.error is not None:
            raise terminal.error
        assert terminal.response is not None  # nosec B101 - COMPLETED always carries a response
        return terminal.response

    # ------------------------------------------------------------------ lifecycle
    def close(self, reason: Optional[str] = None, *, wait: float = 1.0) -> None:
        """Cancel the stream and release the transport. Idempotent.

        ``wait`` bounds how long to wait for the producer thread to stop.
        """
        if self._closed:
            return
        self._closed = True
        self._engine.token.cancel(reason or "consumer closed the stream")
        with suppress(queue.Empty):
            while True:
                self._queue.get_nowait()
        if wait and threading.current_thread() is not self._thread:
            self._thread.join(wait)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the producer thread to exit; return True if it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def __enter__(self) -> "StreamHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:  # pragma: no cover - GC timing
        with suppress(Exception):
            if not self._closed and self._terminal is None:
                self.close(wait=0)

    # ------------------------------------------------------------------ inspection
    @property
    def state(self) -> StreamState:
        return self._engine.state

    @property
    def metrics(self) -> StreamMetrics:
        return self._engine.metrics

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_event(self) -> Optional[StreamEvent]:
        return self._terminal

    @property
    def response(self) -> Optional[ChatCompletionResponse]:
        """Merged response if the stream completed and the consumer saw it."""
        return self._terminal.response if self._terminal is not None else None


__all__ = ["StreamHandle", "channel_capacity", "CHANNEL_CAPACITY_ENV"]
