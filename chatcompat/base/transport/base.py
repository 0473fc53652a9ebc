"""Transport boundary consumed by the client and the stream merge engine.

A transport sends one request and returns a :class:`TransportResponse`. For
non-streaming calls the response carries the full ``body``; for streaming calls
it carries a lazy ``fragments`` iterator of text lines that must preserve wire
order, end by normal exhaustion, and report failures by raising.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Protocol, runtime_checkable


@dataclass
class TransportResponse:
    """Status plus either a full body or a lazy line iterator.

    ``close()`` releases the underlying connection. It is idempotent and safe
    to call from any thread.
    """

    status_code: int
    body: bytes = b""
    fragments: Optional[Iterator[str]] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    on_close: Optional[Callable[[], None]] = None
    _closed: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def closed(self) -> bool:
        return self._closed

    def read_body(self) -> bytes:
        """Return the full body, draining ``fragments`` for streaming responses.

        Used to decode the error document of a stream request rejected with a
        non-2xx status.
        """
        if self.fragments is not None and not self.body:
            self.body = "\n".join(self.fragments).encode("utf-8")
            self.fragments = None
        return self.body

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            cb = self.on_close
        if cb is not None:
            cb()


@runtime_checkable
class Transport(Protocol):
    """Sends one HTTP request relative to the client's base URL."""

    def send(
        self,
        path: str,
        payload: Optional[Dict[str, Any]],
        headers: Mapping[str, str],
        *,
        stream: bool,
        method: str = "POST",
    ) -> TransportResponse:
        """Send the request; raise ``TransportError`` if it cannot be sent."""
        ...

    def close(self) -> None:
        """Release resources owned by the transport."""
        ...


__all__ = ["Transport", "TransportResponse"]
