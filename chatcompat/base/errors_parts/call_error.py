"""
Call-time errors raised while talking to a chat-completion service.

``ApiError`` means the service answered with its error envelope. The protocol
errors (``MalformedResponse``, ``StreamDecodeError``, ``StreamTruncated``) mean
the answer could not be trusted. ``TransportError`` wraps failures raised by
the transport itself.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from .chat_error import ChatError
from .error_code import ErrorCode


class CallError(ChatError):
    """Base class for failures after a request left the builder."""


class ApiError(CallError):
    """The service rejected the request and returned its error envelope.

    Attributes:
        api_code: Vendor error code exactly as sent (string or integer).
        status: HTTP status of the response, when known.
        error_type: Optional vendor ``type`` field (``invalid_request_error``).
        param: Optional offending parameter name reported by the vendor.
    """

    def __init__(
        self,
        api_code: Union[str, int, None],
        message: str,
        *,
        status: Optional[int] = None,
        error_type: Optional[str] = None,
        param: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        vendor: Optional[str] = None,
        model: Optional[str] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(
            message,
            code=code,
            vendor=vendor,
            model=model,
            retryable=retryable,
        )
        self.api_code = api_code
        self.status = status
        self.error_type = error_type
        self.param = param


class MalformedResponse(CallError):
    """A non-streaming body did not match the response schema."""

    default_code = ErrorCode.PROTOCOL

    def __init__(self, detail: str, **kwargs: Any) -> None:
        super().__init__(f"malformed response: {detail}", **kwargs)
        self.detail = detail


class StreamDecodeError(CallError):
    """A streamed fragment could not be decoded as a delta envelope."""

    default_code = ErrorCode.PROTOCOL

    def __init__(self, raw_fragment: str, **kwargs: Any) -> None:
        super().__init__(f"undecodable stream fragment: {raw_fragment[:200]!r}", **kwargs)
        self.raw_fragment = raw_fragment


class StreamTruncated(CallError):
    """The transport closed before the end-of-stream sentinel arrived.

    ``partial`` holds an immutable snapshot of what had been merged so far. It
    is diagnostic only and must not be treated as a complete response.
    """

    default_code = ErrorCode.TRUNCATED

    def __init__(self, partial: Any = None, **kwargs: Any) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__("stream closed before end-of-stream sentinel", **kwargs)
        self.partial = partial


class StreamCancelled(CallError):
    """The consumer closed its end of the stream."""

    default_code = ErrorCode.CANCELLED


class TransportError(CallError):
    """The transport raised while sending or reading."""


__all__ = [
    "CallError",
    "ApiError",
    "MalformedResponse",
    "StreamDecodeError",
    "StreamTruncated",
    "StreamCancelled",
    "TransportError",
]
