"""Timeout settings for the default HTTP transport.

TimeoutConfig
    Frozen dataclass with the connect and read timeouts applied to pooled
    ``httpx.Client`` instances.

get_timeout_config()
    Returns a process-cached configuration, parsing environment overrides on
    first use and again only when those variables change. Supported
    environment variables (all optional):
        CHATCOMPAT_HTTP_TIMEOUT_SECONDS     read/write/pool timeout
        CHATCOMPAT_CONNECT_TIMEOUT_SECONDS  connect timeout

The stream merge engine imposes no timeout of its own. The read timeout bounds
the gap between two streamed lines, not the length of a whole stream.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

import httpx

HTTP_TIMEOUT_ENV = "CHATCOMPAT_HTTP_TIMEOUT_SECONDS"
CONNECT_TIMEOUT_ENV = "CHATCOMPAT_CONNECT_TIMEOUT_SECONDS"


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds).

    Attributes:
        http_timeout_seconds: Read, write and pool-acquire timeout for each
            request. For streams this is the idle gap allowed between lines.
        connect_timeout_seconds: Timeout for establishing the TCP/TLS session.
    """

    http_timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 10.0

    def to_httpx(self) -> httpx.Timeout:
        """Return the equivalent ``httpx.Timeout``."""
        return httpx.Timeout(self.http_timeout_seconds, connect=self.connect_timeout_seconds)


_CACHED: TimeoutConfig | None = None
_ENV_GUARD: str | None = None


def _parse_env_float(name: str, default: float) -> float:
    """Read a positive float from the environment, falling back to ``default``."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else default


def get_timeout_config() -> TimeoutConfig:
    """Return the process-cached ``TimeoutConfig``.

    The cache is refreshed when the relevant environment variables change,
    which lets tests adjust timeouts with ``monkeypatch.setenv``.
    """
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - documented module cache
    guard = "/".join([os.getenv(HTTP_TIMEOUT_ENV, ""), os.getenv(CONNECT_TIMEOUT_ENV, "")])
    if _CACHED is not None and _ENV_GUARD == guard:
        return _CACHED
    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        http_timeout_seconds=_parse_env_float(HTTP_TIMEOUT_ENV, defaults.http_timeout_seconds),
        connect_timeout_seconds=_parse_env_float(CONNECT_TIMEOUT_ENV, defaults.connect_timeout_seconds),
    )
    _ENV_GUARD = guard
    return _CACHED


__all__ = [
    "TimeoutConfig",
    "get_timeout_config",
    "HTTP_TIMEOUT_ENV",
    "CONNECT_TIMEOUT_ENV",
]
