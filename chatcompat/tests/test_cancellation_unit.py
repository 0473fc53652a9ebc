"""Unit tests for cooperative cancellation primitives.

Covers idempotent cancel, cascade to children, late link of child after
parent cancel, and raise_if_cancelled behavior.
"""
from __future__ import annotations

import pytest

from chatcompat.base.cancellation import CancellationToken
from chatcompat.base.errors import StreamCancelled


def test_cancel_cascades_to_children_and_is_idempotent():
    parent = CancellationToken()
    child1 = parent.child()
    child2 = parent.child()

    parent.cancel(reason="stop")
    # idempotent second call
    parent.cancel(reason="ignored")

    assert parent.cancelled is True and parent.reason == "stop"  # nosec B101 - pytest assert in tests
    assert child1.cancelled is True and child1.reason == "stop"  # nosec B101 - pytest assert in tests
    assert child2.cancelled is True and child2.reason == "stop"  # nosec B101 - pytest assert in tests


def test_child_cancel_does_not_reach_parent():
    parent = CancellationToken()
    child = parent.child()
    child.cancel("consumer closed")
    assert child.cancelled and not parent.cancelled  # nosec B101 - pytest assert in tests


def test_link_child_after_parent_cancel_immediately_cancels_child():
    parent = CancellationToken()
    parent.cancel("done")
    late_child = CancellationToken(parent=parent)
    assert late_child.cancelled is True and late_child.reason == "done"  # nosec B101 - pytest assert in tests


def test_raise_if_cancelled_raises_stream_cancelled():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel("terminate")
    with pytest.raises(StreamCancelled):
        token.raise_if_cancelled()


def test_wait_returns_cancelled_state():
    token = CancellationToken()
    assert token.wait(0.01) is False  # nosec B101 - pytest assert in tests
    token.cancel()
    assert token.wait(0.01) is True  # nosec B101 - pytest assert in tests


def test_release_unlinks_child_from_parent():
    parent = CancellationToken()
    kept = parent.child()
    done = parent.child()
    assert parent.children == (kept, done)  # nosec B101 - pytest assert in tests

    done.release()
    done.release()  # second release is a no-op
    assert parent.children == (kept,)  # nosec B101 - pytest assert in tests

    parent.cancel("shutdown")
    assert kept.cancelled is True  # nosec B101 - pytest assert in tests
    assert done.cancelled is False  # nosec B101 - pytest assert in tests


def test_release_on_root_token_is_a_noop():
    token = CancellationToken()
    token.release()
    assert token.children == () and not token.cancelled  # nosec B101 - pytest assert in tests
