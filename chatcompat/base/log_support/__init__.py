"""Auxiliary logging helpers (formatter, context) used by base.logging."""

from .json_formatter import ISO, JsonFormatter, redact
from .logging_context import LogContext

__all__ = ["JsonFormatter", "ISO", "LogContext", "redact"]
