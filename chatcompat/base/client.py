"""
Client facade for OpenAI-compatible chat completion services.

Purpose
-------
Dispatch an assembled :class:`ChatCompletionRequest` through a
:class:`Transport` and return either a complete response or a streaming
handle:

- ``stream == False``: wait for the full body, decode it and return
  ``Complete(response)``.
- ``stream == True``: open a streaming response. A non-2xx status is decoded
  as an error body and raised as ``ApiError`` before any handle exists;
  otherwise return ``Streaming(handle)`` wired to a
  :class:`StreamMergeEngine` running on its own producer thread.

Construction
------------
``ChatClient.builder()`` requires a base URL and an authenticator;
``with_version("v1")`` appends a version segment to the base URL.
``ChatClient.from_config(vendor)`` assembles the same thing from
:func:`chatcompat.config.get_vendor_config`.

This layer never retries. Failures are raised as :class:`CallError`
subclasses carrying a normalized ``ErrorCode`` and a ``retryable`` hint.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import httpx

from ..config import get_vendor_config
from ..config.defaults import CHAT_COMPLETIONS_PATH, MODELS_PATH
from .auth import Authenticator, BearerAuth, apply_auth, authenticator_for
from .cancellation import CancellationToken
from .errors import ApiError, ChatError, InvalidValue, MalformedResponse, MissingField, RETRYABLE_CODES, code_for_status
from .logging import LogContext, get_logger, normalized_log_event
from .request import ChatCompletionRequest, ChatCompletionRequestBuilder
from .response import (
    ChatCompletionResponse,
    ModelList,
    api_error_from_envelope,
    decode_model_list,
    decode_response,
    is_error_envelope,
    load_json,
)
from .streaming import StreamHandle, StreamMergeEngine
from .transport import HttpxTransport, Transport, TransportResponse

_logger = get_logger("client")

_REQUEST_ID_HEADERS = ("x-request-id", "request-id", "openai-request-id")


@dataclass(frozen=True)
class Complete:
    """Result of a non-streaming call."""

    response: ChatCompletionResponse


@dataclass(frozen=True)
class Streaming:
    """Result of a streaming call; the caller drives consumption."""

    handle: StreamHandle


ChatCompletionResult = Union[Complete, Streaming]


def _request_id(headers: Mapping[str, str]) -> Optional[str]:
    lowered = {k.lower(): v for k, v in headers.items()}
    return next((lowered[h] for h in _REQUEST_ID_HEADERS if lowered.get(h)), None)


def error_for_status(
    status: int,
    body: bytes,
    *,
    vendor: Optional[str] = None,
    model: Optional[str] = None,
) -> ApiError:
    """Build the ``ApiError`` for a non-2xx response body.

    Bodies holding the error envelope keep the vendor's message verbatim;
    anything else (HTML gateway pages, empty bodies) is summarized.
    """
    try:
        data = load_json(body)
    except MalformedResponse:
        data = None
    if is_error_envelope(data):
        return api_error_from_envelope(data, status=status, vendor=vendor, model=model)
    text = body.decode("utf-8", errors="replace").strip()
    code = code_for_status(status)
    return ApiError(
        None,
        f"HTTP {status}: {text[:200]}" if text else f"HTTP {status}",
        status=status,
        code=code,
        vendor=vendor,
        model=model,
        retryable=code in RETRYABLE_CODES,
    )


def join_version(base_url: str, version: str) -> str:
    """Append a version path segment: ``https://h/api`` + ``v1`` -> ``https://h/api/v1``."""
    segment = version.strip().strip("/")
    if not segment:
        raise InvalidValue("version", "must be non-empty")
    return f"{base_url.rstrip('/')}/{segment}"


class ChatClient:
    """Connection to one compatible service (base URL + credentials + transport)."""

    def __init__(
        self,
        base_url: str,
        authenticator: Authenticator,
        *,
        transport: Optional[Transport] = None,
        vendor: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        default_model: Optional[str] = None,
        stream_capacity: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.vendor = vendor
        self.default_model = default_model
        self._authenticator = authenticator
        self._headers: Dict[str, str] = dict(headers or {})
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(self.base_url, vendor=vendor)
        self._stream_capacity = stream_capacity
        self._token = token or CancellationToken()

    @classmethod
    def builder(cls) -> "ChatClientBuilder":
        return ChatClientBuilder()

    @classmethod
    def from_config(cls, vendor: str, **overrides: Any) -> "ChatClient":
        """Build a client from the merged vendor configuration.

        ``overrides`` accepts the configuration keys (``base_url``,
        ``api_key``, ``model``, ``version``, ``auth``, ``auth_header``,
        ``headers``) plus ``transport`` for an explicit transport instance.

        Raises:
            MissingField: no base URL, or no API key for a keyed scheme.
            InvalidValue: unknown auth scheme.
        """
        transport = overrides.pop("transport", None)
        cfg = get_vendor_config(vendor, overrides)
        base_url = cfg.get("base_url")
        if not base_url:
            raise MissingField("base_url")
        builder = (
            cls.builder()
            .with_vendor(cfg["vendor"])
            .with_base_url(str(base_url))
            .with_authenticator(authenticator_for(cfg.get("auth"), cfg.get("api_key"), cfg.get("auth_header")))
        )
        if cfg.get("version"):
            builder = builder.with_version(str(cfg["version"]))
        for name, value in (cfg.get("headers") or {}).items():
            builder = builder.with_header(str(name), str(value))
        if cfg.get("model"):
            builder = builder.with_default_model(str(cfg["model"]))
        if transport is not None:
            builder = builder.with_transport(transport)
        return builder.build()

    # ------------------------------------------------------------------ helpers
    def request_builder(self) -> ChatCompletionRequestBuilder:
        """Request builder pre-filled with the configured default model."""
        b = ChatCompletionRequest.builder()
        return b.with_model(self.default_model) if self.default_model else b

    def _headers_for(self) -> Dict[str, str]:
        return apply_auth(self._authenticator, self._headers)

    def _ctx(self, model: Optional[str], *, stream: Optional[bool] = None) -> LogContext:
        return LogContext(vendor=self.vendor, model=model, stream=stream)

    def _send(self, path: str, payload: Optional[Dict[str, Any]], *, stream: bool, method: str, ctx: LogContext) -> TransportResponse:
        if _logger.isEnabledFor(logging.DEBUG) and payload is not None:
            normalized_log_event(
                _logger,
                "chat.request",
                ctx,
                phase="start",
                attempt=1,
                emitted=None,
                tokens=None,
                level=logging.DEBUG,
                body=json.dumps(payload, ensure_ascii=False),
            )
        try:
            resp = self._transport.send(path, payload, self._headers_for(), stream=stream, method=method)
        except ChatError as exc:
            self._log_error(ctx, exc)
            raise
        ctx.request_id = _request_id(resp.headers)
        return resp

    def _log_error(self, ctx: LogContext, exc: ChatError) -> None:
        normalized_log_event(
            _logger,
            "chat.error",
            ctx,
            phase="finalize",
            attempt=1,
            error_code=exc.code.value,
            emitted=False,
            tokens=None,
            level=logging.WARNING,
            error=exc.message[:260],
            status=getattr(exc, "status", None),
        )

    # ------------------------------------------------------------------ API
    def call(self, request: ChatCompletionRequest) -> ChatCompletionResult:
        """Dispatch ``request`` according to its ``stream`` flag."""
        if request.stream:
            return Streaming(self.stream(request))
        return Complete(self.complete(request))

    def complete(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Send ``request`` as a non-streaming call and decode the body.

        Raises:
            ApiError: non-2xx status or error envelope.
            MalformedResponse: body does not match the response schema.
            TransportError: the transport failed.
        """
        request = request.with_stream(False)
        ctx = self._ctx(request.model, stream=False)
        normalized_log_event(_logger, "chat.start", ctx, phase="start", attempt=1, emitted=False, tokens=None)
        resp = self._send(CHAT_COMPLETIONS_PATH, request.to_payload(), stream=False, method="POST", ctx=ctx)
        try:
            if not resp.ok:
                raise error_for_status(resp.status_code, resp.body, vendor=self.vendor, model=request.model)
            response = decode_response(resp.body, status=resp.status_code, vendor=self.vendor, model=request.model)
        except ChatError as exc:
            self._log_error(ctx, exc)
            raise
        finally:
            resp.close()
        ctx.response_id = response.id or None
        normalized_log_event(
            _logger,
            "chat.end",
            ctx,
            phase="finalize",
            attempt=1,
            emitted=True,
            tokens=response.usage,
            finish_reason=response.finish_reason,
        )
        return response

    def stream(self, request: ChatCompletionRequest, *, capacity: Optional[int] = None) -> StreamHandle:
        """Send ``request`` as a streaming call and return a live handle.

        Raises:
            ApiError: the service rejected the request (non-2xx status).
            TransportError: the transport failed before the stream opened.
        """
        request = request.with_stream(True)
        ctx = self._ctx(request.model, stream=True)
        resp = self._send(CHAT_COMPLETIONS_PATH, request.to_payload(), stream=True, method="POST", ctx=ctx)
        if not resp.ok:
            try:
                body = resp.read_body()
            except ChatError:
                body = b""
            finally:
                resp.close()
            exc = error_for_status(resp.status_code, body, vendor=self.vendor, model=request.model)
            self._log_error(ctx, exc)
            raise exc
        engine = StreamMergeEngine(ctx=ctx, token=self._token.child(), on_close=resp.close)
        return StreamHandle(engine, resp.fragments or iter(()), capacity=capacity or self._stream_capacity)

    def models(self) -> ModelList:
        """List the models the service exposes (``GET {base}/models``)."""
        ctx = self._ctx(None)
        resp = self._send(MODELS_PATH, None, stream=False, method="GET", ctx=ctx)
        try:
            if not resp.ok:
                raise error_for_status(resp.status_code, resp.body, vendor=self.vendor)
            return decode_model_list(resp.body, status=resp.status_code, vendor=self.vendor)
        except ChatError as exc:
            self._log_error(ctx, exc)
            raise
        finally:
            resp.close()

    # ------------------------------------------------------------------ lifecycle
    def close(self) -> None:
        """Cancel live streams and close a transport this client created."""
        self._token.cancel("client closed")
        if self._owns_transport:
            self._transport.close()

    def __enter__(self) -> "ChatClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ChatClient(base_url={self.base_url!r}, vendor={self.vendor!r}, auth={self._authenticator!r})"


@dataclass(frozen=True)
class ChatClientBuilder:
    """Immutable builder for :class:`ChatClient`."""

    base_url: Optional[str] = None
    authenticator: Optional[Authenticator] = None
    vendor: Optional[str] = None
    transport: Optional[Transport] = None
    headers: Tuple[Tuple[str, str], ...] = ()
    default_model: Optional[str] = None
    stream_capacity: Optional[int] = None

    def with_base_url(self, base_url: str) -> "ChatClientBuilder":
        try:
            url = httpx.URL(base_url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidValue("base_url", str(exc)) from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidValue("base_url", "must be an absolute http(s) URL")
        return replace(self, base_url=base_url.rstrip("/"))

    def with_version(self, version: str) -> "ChatClientBuilder":
        if self.base_url is None:
            raise MissingField("base_url")
        return replace(self, base_url=join_version(self.base_url, version))

    def with_authenticator(self, authenticator: Authenticator) -> "ChatClientBuilder":
        return replace(self, authenticator=authenticator)

    def with_api_key(self, key: str) -> "ChatClientBuilder":
        """Shorthand for ``with_authenticator(BearerAuth(key))``."""
        return replace(self, authenticator=BearerAuth(key))

    def with_vendor(self, vendor: str) -> "ChatClientBuilder":
        return replace(self, vendor=vendor)

    def with_transport(self, transport: Transport) -> "ChatClientBuilder":
        return replace(self, transport=transport)

    def with_header(self, name: str, value: str) -> "ChatClientBuilder":
        return replace(self, headers=self.headers + ((name, value),))

    def with_default_model(self, model: str) -> "ChatClientBuilder":
        return replace(self, default_model=model)

    def with_stream_capacity(self, capacity: int) -> "ChatClientBuilder":
        if capacity < 1:
            raise InvalidValue("stream_capacity", "must be >= 1")
        return replace(self, stream_capacity=capacity)

    def build(self) -> ChatClient:
        if self.base_url is None:
            raise MissingField("base_url")
        if self.authenticator is None:
            raise MissingField("authenticator")
        return ChatClient(
            self.base_url,
            self.authenticator,
            transport=self.transport,
            vendor=self.vendor,
            headers=dict(self.headers),
            default_model=self.default_model,
            stream_capacity=self.stream_capacity,
        )


def call(request: ChatCompletionRequest, client: ChatClient) -> ChatCompletionResult:
    """Function form of :meth:`ChatClient.call`."""
    return client.call(request)


__all__ = [
    "ChatClient",
    "ChatClientBuilder",
    "Complete",
    "Streaming",
    "ChatCompletionResult",
    "call",
    "error_for_status",
    "join_version",
]
