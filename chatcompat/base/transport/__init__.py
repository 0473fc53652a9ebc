"""Transport boundary and the default httpx implementation."""

from .base import Transport, TransportResponse
from .httpx_transport import HttpxTransport

__all__ = ["Transport", "TransportResponse", "HttpxTransport"]
