"""Structured logging context object.

:class:`LogContext` carries the fields shared by every log event of one chat
call: vendor, model, whether it streams, and the request/response ids learned
along the way. The client creates one per call and hands it to the stream
merge engine, so ``chat.*`` and ``stream.*`` events of a call correlate.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Per-call logging context; mutable so ids can be filled in late."""

    vendor: Optional[str] = None
    model: Optional[str] = None
    stream: Optional[bool] = None
    request_id: Optional[str] = None
    response_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def bind(self, **extra: Any) -> "LogContext":
        """Return a copy with ``extra`` merged over the current extras."""
        return replace(self, extra={**self.extra, **extra})

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {}) or {}
        data.update({k: v for k, v in extra.items() if v is not None and k not in data})
        return {k: v for k, v in data.items() if v is not None}


__all__ = ["LogContext"]
