"""Unified chat error taxonomy public surface.

This module re-exports the implementations under
``chatcompat.base.errors_parts`` to keep a stable import path while each family
of errors lives in its own module.

Hierarchy::

    ChatError
    ├── BuildError
    │   ├── MissingField
    │   └── InvalidValue
    └── CallError
        ├── ApiError
        ├── MalformedResponse
        ├── StreamDecodeError
        ├── StreamTruncated
        ├── StreamCancelled
        └── TransportError
"""

from .errors_parts import (
    ErrorCode,
    ChatError,
    BuildError,
    MissingField,
    InvalidValue,
    CallError,
    ApiError,
    MalformedResponse,
    StreamDecodeError,
    StreamTruncated,
    StreamCancelled,
    TransportError,
    classify_exception,
    code_for_status,
    RETRYABLE_CODES,
)

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
