"""StreamHandle: ordered delivery, backpressure, cancellation, lifecycle.

The producer runs on its own thread, so assertions about read counts poll
with a deadline instead of sleeping a fixed amount.
"""
from __future__ import annotations

import time

import pytest

from chatcompat.base.errors import StreamCancelled, StreamTruncated
from chatcompat.base.streaming import StreamState
from chatcompat.base.streaming.handle import CHANNEL_CAPACITY_ENV, channel_capacity
from chatcompat.config.defaults import STREAM_CHANNEL_CAPACITY
from chatcompat.tests.streaming.helpers import (
    DONE,
    ScriptedFragments,
    delta_chunk,
    make_handle,
    sse,
)


def _wait_for(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_events_arrive_in_order_and_final_returns_response():
    print("TEST: iterate handle -> chunk events in order, final() returns merged response")
    frags = ScriptedFragments([sse(delta_chunk(c)) for c in ("a", "b", "c")] + [DONE])
    handle = make_handle(frags)
    events = list(handle)
    assert [e.delta for e in events[:-1]] == ["a", "b", "c"]
    assert events[-1].finish
    assert handle.final().content == "abc"
    assert handle.response is not None
    assert handle.state is StreamState.COMPLETED
    assert handle.join(2.0)
    assert frags.closed


def test_final_without_iterating_consumes_stream():
    frags = ScriptedFragments([sse(delta_chunk("4", finish_reason="stop")), DONE])
    resp = make_handle(frags).final()
    assert resp.content == "4" and resp.finish_reason == "stop"


def test_final_raises_terminal_error():
    print("TEST: stream without sentinel -> final() raises StreamTruncated")
    frags = ScriptedFragments([sse(delta_chunk("par"))])
    handle = make_handle(frags)
    with pytest.raises(StreamTruncated) as ei:
        handle.final()
    assert ei.value.partial.content == "par"
    assert handle.terminal_event.error is ei.value


def test_backpressure_bounds_read_ahead():
    print("TEST: capacity N, no consumer -> producer reads exactly N+1 fragments")
    capacity = 3
    frags = ScriptedFragments([sse(delta_chunk("x"))], endless=True)
    handle = make_handle(frags, capacity=capacity)
    try:
        assert _wait_for(lambda: frags.reads >= capacity + 1)
        time.sleep(0.2)
        assert frags.reads == capacity + 1
        assert not frags.closed
        first = next(handle)
        assert first.delta == "x"
        assert _wait_for(lambda: frags.reads >= capacity + 2)
        time.sleep(0.2)
        assert frags.reads == capacity + 2
    finally:
        handle.close()


def test_close_while_producer_blocked_cancels_and_releases():
    print("TEST: close() with full channel -> CANCELLED, transport released, final() raises")
    frags = ScriptedFragments([sse(delta_chunk("x"))], endless=True)
    handle = make_handle(frags, capacity=1)
    assert _wait_for(lambda: frags.reads >= 2)
    handle.close("user pressed stop")
    assert handle.join(2.0)
    assert frags.closed and frags.close_calls == 1
    assert handle.state is StreamState.CANCELLED
    assert handle.closed
    with pytest.raises(StreamCancelled):
        handle.final()
    assert list(handle) == []


def test_close_is_idempotent():
    frags = ScriptedFragments([sse(delta_chunk("x"))], endless=True)
    handle = make_handle(frags, capacity=2)
    handle.close()
    handle.close()
    assert handle.join(2.0)
    assert frags.close_calls == 1


def test_close_after_completion_keeps_outcome():
    frags = ScriptedFragments([sse(delta_chunk("done")), DONE])
    handle = make_handle(frags)
    resp = handle.final()
    handle.close()
    assert handle.state is StreamState.COMPLETED
    assert resp.content == "done"
    assert frags.close_calls == 1


def test_context_manager_closes_stream():
    frags = ScriptedFragments([sse(delta_chunk("x"))], endless=True)
    with make_handle(frags, capacity=2) as handle:
        assert next(handle).delta == "x"
    assert handle.closed
    assert handle.join(2.0)
    assert frags.closed
    assert handle.state is StreamState.CANCELLED


def test_metrics_exposed_on_handle():
    frags = ScriptedFragments([sse(delta_chunk("a")), sse(delta_chunk("b")), DONE])
    handle = make_handle(frags)
    handle.final()
    assert handle.metrics.emitted == 2
    assert handle.metrics.fragments_read == 3


@pytest.mark.parametrize(
    "raw,expected",
    [(None, STREAM_CHANNEL_CAPACITY), ("3", 3), ("0", 1), ("lots", STREAM_CHANNEL_CAPACITY)],
)
def test_channel_capacity_env(monkeypatch, raw, expected):
    if raw is None:
        monkeypatch.delenv(CHANNEL_CAPACITY_ENV, raising=False)
    else:
        monkeypatch.setenv(CHANNEL_CAPACITY_ENV, raw)
    assert channel_capacity() == expected
