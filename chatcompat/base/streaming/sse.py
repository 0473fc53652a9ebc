"""Server-sent-event line parsing for chat completion streams.

Each raw fragment is one line of the SSE body. :func:`parse_fragment` classifies
it as something to skip, a data payload, or the ``[DONE]`` end-of-stream
sentinel. :func:`decode_chunk` turns a data payload into a
:class:`~chatcompat.base.streaming.chunk.StreamChunk`.

Skipped lines: blank lines, comments (``:`` prefix, used as keep-alives by some
vendors) and the non-data fields ``event:``, ``id:`` and ``retry:``. Any other
line is treated as a data payload so that a vendor writing bare JSON (or
garbage) surfaces as a decode error instead of being silently dropped.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from ...config.defaults import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from ..errors import StreamDecodeError
from ..response import api_error_from_envelope, is_error_envelope
from .chunk import StreamChunk

_IGNORED_FIELDS = ("event:", "id:", "retry:")


class FragmentKind(str, Enum):
    SKIP = "skip"
    DATA = "data"
    DONE = "done"


@dataclass(frozen=True)
class Fragment:
    kind: FragmentKind
    payload: str = ""


_SKIP = Fragment(FragmentKind.SKIP)
_DONE = Fragment(FragmentKind.DONE)


def parse_fragment(raw: str) -> Fragment:
    """Classify one SSE line."""
    line = raw.strip()
    if not line or line.startswith(":"):
        return _SKIP
    if line.startswith(SSE_DATA_PREFIX):
        payload = line[len(SSE_DATA_PREFIX):].strip()
        if not payload:
            return _SKIP
        if payload == SSE_DONE_SENTINEL:
            return _DONE
        return Fragment(FragmentKind.DATA, payload)
    if line.startswith(_IGNORED_FIELDS):
        return _SKIP
    return Fragment(FragmentKind.DATA, line)


def decode_chunk(
    payload: str,
    *,
    vendor: Optional[str] = None,
    model: Optional[str] = None,
) -> StreamChunk:
    """Decode a data payload into a :class:`StreamChunk`.

    Raises:
        ApiError: the payload is an error envelope sent mid-stream.
        StreamDecodeError: the payload is not JSON or not a delta envelope.
    """
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise StreamDecodeError(payload, vendor=vendor, model=model, raw=exc) from exc
    if is_error_envelope(data):
        raise api_error_from_envelope(data, vendor=vendor, model=model)
    if not isinstance(data, dict):
        raise StreamDecodeError(payload, vendor=vendor, model=model)
    try:
        return StreamChunk.model_validate(data)
    except ValidationError as exc:
        raise StreamDecodeError(payload, vendor=vendor, model=model, raw=exc) from exc


__all__ = ["FragmentKind", "Fragment", "parse_fragment", "decode_chunk"]
