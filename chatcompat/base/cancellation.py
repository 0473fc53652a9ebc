"""Cooperative cancellation primitive.

``CancellationToken`` is the signal a stream consumer sends back to the
producer thread when it stops listening. The producer polls the token before
every blocking transport read and while waiting for channel capacity; nothing
is interrupted pre-emptively.

Child tokens inherit cancellation from their parent, so a client-wide token
can stop every stream it spawned. A child calls :meth:`CancellationToken.release`
when its stream ends so the parent does not keep finished children.
"""

from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from .errors import StreamCancelled


class CancellationToken:
    """A thread-safe cooperative cancellation token with cascading children."""

    def __init__(self, *, parent: "CancellationToken | None" = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._children: List[CancellationToken] = []
        self._parent: Optional[CancellationToken] = None
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:  # noqa: D401 - short form
        """Whether cancellation has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:  # noqa: D401 - short form
        """Reason string supplied at cancel time (if any)."""
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation and cascade to children. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel(reason)

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        """Link a child token so parent cancellation cascades (returns child)."""
        with self._lock:
            self._children.append(token)
            token._parent = self
            should_cancel = self._event.is_set()
            reason = self._reason
        if should_cancel:
            token.cancel(reason)
        return token

    def child(self) -> "CancellationToken":
        """Create and link a child token."""
        return CancellationToken(parent=self)

    def unlink_child(self, token: "CancellationToken") -> None:
        """Forget ``token`` so it no longer receives cascaded cancellation."""
        with self._lock:
            if token in self._children:
                self._children.remove(token)
        if token._parent is self:
            token._parent = None

    def release(self) -> None:
        """Detach from the parent once the owner of this token has finished."""
        parent = self._parent
        if parent is not None:
            parent.unlink_child(self)

    @property
    def children(self) -> Tuple["CancellationToken", ...]:
        with self._lock:
            return tuple(self._children)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return ``cancelled``."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """Raise :class:`StreamCancelled` if the token is cancelled."""
        if self._event.is_set():
            raise StreamCancelled(self._reason or "consumer closed the stream")

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return (
            f"CancellationToken(cancelled={self.cancelled}, "
            f"reason={self._reason!r}, children={len(self._children)})"
        )


__all__ = ["CancellationToken"]
