"""HTTP utilities package.

Exposes the pooled httpx clients used by the default transport.
"""

from .client import close_all_clients, get_httpx_client, pooled_keys

__all__ = ["get_httpx_client", "close_all_clients", "pooled_keys"]
