"""
Pre-flight build errors.

Raised by the schema builders and the request assembler at ``build`` time.
These never reach the network; they signal that the caller assembled an
incomplete or inconsistent value.
"""
from __future__ import annotations

from .chat_error import ChatError
from .error_code import ErrorCode


class BuildError(ChatError):
    """Base class for builder failures."""

    default_code = ErrorCode.VALIDATION

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field


class MissingField(BuildError):
    """A mandatory field was never set on the builder."""

    def __init__(self, field: str) -> None:
        super().__init__(f"missing required field '{field}'", field=field)


class InvalidValue(BuildError):
    """A field was set to a value that violates a constraint."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"invalid value for '{field}': {reason}", field=field)
        self.reason = reason


__all__ = ["BuildError", "MissingField", "InvalidValue"]
