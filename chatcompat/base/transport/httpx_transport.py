"""Default transport on pooled ``httpx`` clients.

Non-streaming requests read the whole body and close the response. Streaming
requests use ``client.send(request, stream=True)`` and expose
``Response.iter_lines()`` as the fragment iterator; the response stays open
until the consumer exhausts or closes it.

Every ``httpx`` failure at send time, and any mid-stream failure other than a
dropped connection, is re-raised as :class:`TransportError` with an
``ErrorCode`` from :func:`classify_exception`. A connection the peer drops
after the stream opened (``RemoteProtocolError``, ``ReadError``) is raised as
:class:`StreamTruncated`; timeouts stay ``TransportError``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Mapping, Optional

import httpx

from ..errors import RETRYABLE_CODES, StreamTruncated, TransportError, classify_exception
from ..http import get_httpx_client
from ..logging import get_logger, log_event
from .base import TransportResponse

_logger = get_logger("transport.httpx")


def _transport_error(exc: BaseException, *, vendor: Optional[str], phase: str) -> TransportError:
    code = classify_exception(exc)
    return TransportError(
        f"{phase} failed: {exc.__class__.__name__}: {exc}",
        code=code,
        vendor=vendor,
        retryable=code in RETRYABLE_CODES,
        raw=exc,
    )


class HttpxTransport:
    """``Transport`` implementation backed by ``httpx.Client``.

    Parameters:
        base_url: Service root including any version segment
            (``https://api.openai.com/v1``).
        client: Optional explicit client (tests pass one built on
            ``httpx.MockTransport``). Without it a pooled client is borrowed
            from :func:`get_httpx_client` and never closed here.
        vendor: Vendor key attached to raised errors and log events.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.Client] = None,
        vendor: Optional[str] = None,
        owns_client: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.vendor = vendor
        self._client = client if client is not None else get_httpx_client(self.base_url, "chat")
        self._owns_client = owns_client and client is not None

    def _url(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    def send(
        self,
        path: str,
        payload: Optional[Dict[str, Any]],
        headers: Mapping[str, str],
        *,
        stream: bool,
        method: str = "POST",
    ) -> TransportResponse:
        hdrs = dict(headers)
        if payload is not None:
            hdrs.setdefault("Content-Type", "application/json")
        if stream:
            hdrs.setdefault("Accept", "text/event-stream")
        try:
            request = self._client.build_request(method, self._url(path), json=payload, headers=hdrs)
            response = self._client.send(request, stream=stream)
        except httpx.HTTPError as exc:
            raise _transport_error(exc, vendor=self.vendor, phase="send") from exc

        if not stream:
            try:
                body = response.read()
            except httpx.HTTPError as exc:
                raise _transport_error(exc, vendor=self.vendor, phase="read") from exc
            finally:
                response.close()
            return TransportResponse(status_code=response.status_code, body=body, headers=dict(response.headers))

        return TransportResponse(
            status_code=response.status_code,
            fragments=self._iter_lines(response),
            headers=dict(response.headers),
            on_close=response.close,
        )

    def _iter_lines(self, response: httpx.Response) -> Iterator[str]:
        try:
            yield from response.iter_lines()
        except httpx.StreamClosed:
            # closed by the consumer; exhaustion is the expected outcome
            return
        except (httpx.RemoteProtocolError, httpx.ReadError) as exc:
            # peer went away mid-body; the engine attaches the partial snapshot
            log_event(
                _logger,
                "transport.stream_dropped",
                level=logging.DEBUG,
                vendor=self.vendor,
                error=exc.__class__.__name__,
            )
            raise StreamTruncated(vendor=self.vendor, raw=exc) from exc
        except httpx.HTTPError as exc:
            log_event(
                _logger,
                "transport.stream_error",
                level=logging.DEBUG,
                vendor=self.vendor,
                error=exc.__class__.__name__,
            )
            raise _transport_error(exc, vendor=self.vendor, phase="stream read") from exc

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["HttpxTransport"]
