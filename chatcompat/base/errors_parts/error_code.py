"""
Normalized chat error codes (taxonomy).

Defines the `ErrorCode` enumeration attached to every `ChatError`. Values are
lowercase snake_case and are considered a stable public contract for logging
and caller-side retry decisions.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    VALIDATION = "validation"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"
    PROTOCOL = "protocol"
    TRUNCATED = "truncated"
    UNKNOWN = "unknown"


__all__ = ["ErrorCode"]
