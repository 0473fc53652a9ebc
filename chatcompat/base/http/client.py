"""Shared HTTP client pool.

Purpose:
    Reuse one ``httpx.Client`` (and so one connection pool) per service, so
    every ``HttpxTransport`` pointed at the same base URL shares keep-alive
    connections. Timeouts come from :func:`get_timeout_config`; pool limits and
    the ``User-Agent`` header from :mod:`chatcompat.config.defaults`.

Lifecycle:
    - Clients are cached by ``(base_url, purpose)``. Purposes keep separate
      pools, e.g. long-lived streams ("chat") apart from short listing calls
      ("models").
    - A transport that borrowed a pooled client never closes it. All pooled
      clients are closed at interpreter exit, or by :func:`close_all_clients`.
    - A client found closed on lookup is replaced.
"""

from __future__ import annotations

import atexit
import contextlib
import threading
from typing import Dict, Optional, Tuple

import httpx

from ...config.defaults import HTTP_MAX_CONNECTIONS, HTTP_MAX_KEEPALIVE_CONNECTIONS, USER_AGENT
from ..timeouts import get_timeout_config

PoolKey = Tuple[Optional[str], str]

_CLIENTS: Dict[PoolKey, httpx.Client] = {}
_LOCK = threading.RLock()


def _new_client(base_url: Optional[str]) -> httpx.Client:
    kwargs = {
        "timeout": get_timeout_config().to_httpx(),
        "limits": httpx.Limits(
            max_connections=HTTP_MAX_CONNECTIONS,
            max_keepalive_connections=HTTP_MAX_KEEPALIVE_CONNECTIONS,
        ),
        "headers": {"User-Agent": USER_AGENT},
    }
    if base_url:
        kwargs["base_url"] = base_url
    return httpx.Client(**kwargs)


def get_httpx_client(base_url: Optional[str], purpose: str = "chat") -> httpx.Client:
    """Return the pooled ``httpx.Client`` for ``(base_url, purpose)``.

    Parameters:
        base_url: Service root set on the client so relative paths resolve.
            ``None`` groups clients under a shared key.
        purpose: Short string discriminating separate pools.
    """
    key: PoolKey = (base_url, purpose)
    client = _CLIENTS.get(key)
    if client is not None and not client.is_closed:
        return client

    with _LOCK:
        client = _CLIENTS.get(key)
        if client is None or client.is_closed:
            client = _CLIENTS[key] = _new_client(base_url)
        return client


def pooled_keys() -> Tuple[PoolKey, ...]:
    """Keys of the clients currently held by the pool."""
    with _LOCK:
        return tuple(_CLIENTS)


def close_all_clients() -> None:
    """Close and forget every pooled client."""
    with _LOCK:
        for c in _CLIENTS.values():
            with contextlib.suppress(Exception):  # nosec B110 - best-effort shutdown
                c.close()
        _CLIENTS.clear()


atexit.register(close_all_clients)

__all__ = ["get_httpx_client", "close_all_clients", "pooled_keys"]
