"""
Root exception type for the chat protocol layer.

Every failure raised by this package derives from `ChatError`, which carries a
normalized `ErrorCode` so callers can branch on the category without matching
on concrete subclasses.
"""
from __future__ import annotations

from typing import Optional

from .error_code import ErrorCode


class ChatError(Exception):
    """Represents a structured chat error with a normalized error code.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Human-readable error message suitable for logging.
        vendor: Vendor key where the error originated (e.g., ``"openai"``).
        model: Optional model name associated with the failure.
        retryable: Hint for caller retry logic (not authoritative; this layer
            never retries on its own).
        raw: Optional original exception for diagnostics.
    """

    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        code: Optional[ErrorCode] = None,
        vendor: Optional[str] = None,
        model: Optional[str] = None,
        retryable: bool = False,
        raw: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.vendor = vendor
        self.model = model
        self.retryable = retryable
        self.raw = raw

    def __str__(self) -> str:  # pragma: no cover - trivial
        """Return a compact string combining vendor, model, code, and message."""
        return f"{self.vendor or '-'}:{self.model or '-'} {self.code.value}: {self.message}"


__all__ = ["ChatError"]
