"""JSON logging formatter.

Defines :class:`JsonFormatter`, which writes one JSON object per record:
timestamp, level, logger name, then the event payload. ``log_event`` messages
are already JSON objects; their keys are hoisted to the top level instead of
being nested as an escaped ``msg`` string. Credential-bearing keys
(``authorization``, ``api_key`` and friends) are masked wherever they appear
in a hoisted payload, so a DEBUG dump of headers never leaks a key.
"""
from __future__ import annotations

import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

ISO = "%Y-%m-%dT%H:%M:%S.%fZ"

MASK = "***"

_SENSITIVE_KEYS = frozenset({"authorization", "api_key", "api-key", "x-api-key", "apikey"})

# LogRecord attributes that are never copied into the payload
_RESERVED = frozenset(
    {
        "msg",
        "args",
        "levelname",
        "levelno",
        "name",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)


def redact(value: Any) -> Any:
    """Return ``value`` with credential-bearing mapping keys masked (recursive)."""
    if isinstance(value, dict):
        return {k: MASK if str(k).lower() in _SENSITIVE_KEYS else redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


class JsonFormatter(logging.Formatter):
    """One-line JSON formatter for chat and stream events."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).strftime(ISO),
            "level": record.levelname,
            "logger": record.name,
        }
        msg_text = record.getMessage()
        parsed: Any = None
        with contextlib.suppress(ValueError):
            parsed = json.loads(msg_text)
        if isinstance(parsed, dict):
            out.update(redact(parsed))
        else:
            out["msg"] = msg_text
        if record.exc_info:
            out["exc"] = self.formatException(record.exc_info)
        for k, v in record.__dict__.items():
            if k.startswith("_") or k in _RESERVED or k in out:
                continue
            out[k] = MASK if k.lower() in _SENSITIVE_KEYS else v
        return json.dumps(out, ensure_ascii=False, default=str)


__all__ = ["JsonFormatter", "ISO", "redact"]
