"""StreamMetrics helpers: token usage mapping and consistency checks."""
from __future__ import annotations

import pytest

from chatcompat.base.response import Usage
from chatcompat.base.streaming.metrics import (
    StreamMetrics,
    apply_token_usage,
    build_token_usage,
    validate_token_usage,
)


def test_build_token_usage_derives_total():
    assert build_token_usage(3, 4) == {"prompt": 3, "completion": 4, "total": 7}
    assert build_token_usage(3, None) == {"prompt": 3, "completion": None, "total": None}
    assert build_token_usage(1, 1, 5)["total"] == 5


def test_apply_token_usage_fills_missing_total():
    m = StreamMetrics()
    apply_token_usage(m, Usage(prompt_tokens=2, completion_tokens=5))
    assert m.total_tokens == 7
    assert m.tokens == {"prompt": 2, "completion": 5, "total": 7}
    apply_token_usage(m, None)
    assert m.total_tokens == 7


def test_validate_token_usage():
    m = StreamMetrics(prompt_tokens=1, completion_tokens=2, total_tokens=4)
    assert validate_token_usage(m) == (False, "total_tokens mismatch: expected prompt+completion == total")
    with pytest.raises(ValueError):
        validate_token_usage(m, raise_on_error=True)
    assert validate_token_usage(StreamMetrics(prompt_tokens=-1))[0] is False
    assert validate_token_usage(StreamMetrics()) == (True, None)


def test_first_chunk_latency_recorded_once():
    m = StreamMetrics()
    m.mark_start()
    m.record_chunk()
    first = m.time_to_first_chunk_ms
    m.record_chunk()
    m.mark_end()
    assert m.emitted == 2
    assert m.time_to_first_chunk_ms == first
    assert m.total_duration_ms >= first
