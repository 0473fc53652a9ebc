"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `chatcompat.base.errors` for the stable surface.
"""

from .error_code import ErrorCode
from .chat_error import ChatError
from .build_error import BuildError, MissingField, InvalidValue
from .call_error import (
    CallError,
    ApiError,
    MalformedResponse,
    StreamDecodeError,
    StreamTruncated,
    StreamCancelled,
    TransportError,
)
from .classification import classify_exception, code_for_status, RETRYABLE_CODES

__all__ = [
    "ErrorCode",
    "ChatError",
    "BuildError",
    "MissingField",
    "InvalidValue",
    "CallError",
    "ApiError",
    "MalformedResponse",
    "StreamDecodeError",
    "StreamTruncated",
    "StreamCancelled",
    "TransportError",
    "classify_exception",
    "code_for_status",
    "RETRYABLE_CODES",
]
