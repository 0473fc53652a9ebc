"""
Response models and the non-streaming decoder.

Purpose
-------
Turn one complete JSON document returned by a compatible service into either
an immutable :class:`ChatCompletionResponse` or a raised :class:`ApiError`.

Decoding rules
--------------
- The document is inspected for an ``"error"`` key before committing to a
  schema. A present, non-null ``error`` is the service's error envelope and is
  raised as ``ApiError``. Vendors send it as an object
  (``{message, type, code, param}``) or as a bare string, and ``code`` may be a
  string or an integer.
- Anything else must match the success schema; invalid JSON, a non-object
  document, missing required fields or wrong types raise
  ``MalformedResponse``.
- ``created`` defaults to ``0`` when a vendor omits it.
"""
from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from .errors import ApiError, ErrorCode, MalformedResponse, RETRYABLE_CODES, code_for_status
from .schema import Message, Role, ToolCall
from .schema.message import Content
from .schema.validation import FROZEN, field_path, to_wire, validated

Body = Union[bytes, bytearray, str, Mapping[str, Any]]

M = TypeVar("M", bound=BaseModel)


class Usage(BaseModel):
    """Token accounting for one completion."""

    model_config = FROZEN

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def _lift_cached_tokens(cls, data: Any) -> Any:
        # OpenAI nests the cache hit count under prompt_tokens_details
        if isinstance(data, Mapping) and data.get("cached_tokens") is None:
            details = data.get("prompt_tokens_details")
            if isinstance(details, Mapping) and details.get("cached_tokens") is not None:
                return {**data, "cached_tokens": details["cached_tokens"]}
        return data


class ResponseMessage(BaseModel):
    """Assistant output of one choice.

    ``reasoning_content`` carries the separate reasoning trace some vendors
    return next to the answer (DeepSeek reasoner models).
    """

    model_config = FROZEN

    role: Optional[Role] = None
    content: Optional[Content] = None
    tool_calls: Optional[Tuple[ToolCall, ...]] = None
    refusal: Optional[str] = None
    reasoning_content: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def _blank_role(cls, value: Any) -> Any:
        return None if value == "" else value

    def to_message(self) -> Message:
        """Convert to a request :class:`Message` so a conversation can continue.

        Raises:
            InvalidValue / MissingField: the reply has neither content nor tool
                calls (e.g. a refusal), which a request message cannot carry.
        """
        return validated(
            Message,
            {"role": self.role or Role.ASSISTANT, "content": self.content, "tool_calls": self.tool_calls or None},
        )

    def text(self) -> str:
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text or "" for p in self.content)


class Choice(BaseModel):
    model_config = FROZEN

    index: int
    message: ResponseMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """A complete chat completion (decoded or merged from a stream)."""

    model_config = FROZEN

    id: str
    object: str = "chat.completion"
    created: int = 0
    model: str
    choices: Tuple[Choice, ...] = ()
    usage: Optional[Usage] = None
    system_fingerprint: Optional[str] = None

    def choice(self, index: int = 0) -> Optional[Choice]:
        """Return the choice with ``index`` (by index value, not position)."""
        return next((c for c in self.choices if c.index == index), None)

    @property
    def content(self) -> Optional[str]:
        """Text content of choice 0, or ``None`` when there is none."""
        c = self.choice(0)
        if c is None or c.message.content is None:
            return None
        return c.message.text()

    @property
    def tool_calls(self) -> Tuple[ToolCall, ...]:
        c = self.choice(0)
        return tuple(c.message.tool_calls or ()) if c is not None else ()

    @property
    def finish_reason(self) -> Optional[str]:
        c = self.choice(0)
        return c.finish_reason if c is not None else None

    def to_dict(self) -> dict:
        return to_wire(self)


class ModelInfo(BaseModel):
    model_config = FROZEN

    id: str
    object: str = "model"
    created: int = 0
    owned_by: Optional[str] = None


class ModelList(BaseModel):
    model_config = FROZEN

    object: str = "list"
    data: Tuple[ModelInfo, ...] = ()

    def ids(self) -> Tuple[str, ...]:
        return tuple(m.id for m in self.data)


# -------------------- decoding --------------------


def load_json(body: Body) -> Any:
    """Parse ``body`` into Python data; mappings pass through unchanged.

    Raises:
        MalformedResponse: on undecodable bytes or invalid JSON.
    """
    if isinstance(body, Mapping):
        return body
    try:
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        return json.loads(text)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedResponse(f"invalid JSON: {exc}") from exc


def is_error_envelope(data: Any) -> bool:
    return isinstance(data, Mapping) and data.get("error") is not None


_ERROR_TYPE_CODES = {
    "invalid_request_error": ErrorCode.VALIDATION,
    "authentication_error": ErrorCode.AUTH,
    "permission_error": ErrorCode.AUTH,
    "not_found_error": ErrorCode.NOT_FOUND,
    "rate_limit_error": ErrorCode.RATE_LIMIT,
    "insufficient_quota": ErrorCode.RATE_LIMIT,
    "server_error": ErrorCode.SERVER_ERROR,
    "overloaded_error": ErrorCode.UNAVAILABLE,
}


def api_error_from_envelope(
    data: Mapping[str, Any],
    *,
    status: Optional[int] = None,
    vendor: Optional[str] = None,
    model: Optional[str] = None,
) -> ApiError:
    """Build the :class:`ApiError` described by an ``{"error": ...}`` document.

    The normalized ``ErrorCode`` comes from the HTTP status when there is one,
    otherwise from the vendor's error ``type``.
    """
    err = data.get("error")
    api_code: Union[str, int, None] = None
    error_type: Optional[str] = None
    param: Optional[str] = None
    if isinstance(err, Mapping):
        message = err.get("message")
        if not isinstance(message, str) or not message:
            message = json.dumps(dict(err), ensure_ascii=False, default=str)
        raw_code = err.get("code")
        api_code = raw_code if isinstance(raw_code, (str, int)) and not isinstance(raw_code, bool) else None
        error_type = err.get("type") if isinstance(err.get("type"), str) else None
        param = err.get("param") if isinstance(err.get("param"), str) else None
    else:
        message = str(err)

    if status is not None and status >= 400:
        code = code_for_status(status)
    else:
        code = _ERROR_TYPE_CODES.get(error_type or "", ErrorCode.UNKNOWN)
    return ApiError(
        api_code,
        message,
        status=status,
        error_type=error_type,
        param=param,
        code=code,
        vendor=vendor,
        model=model,
        retryable=code in RETRYABLE_CODES,
    )


def _describe(exc: ValidationError) -> str:
    err = exc.errors()[0]
    return f"{field_path(tuple(err.get('loc', ()))) or '<root>'}: {err.get('msg', 'invalid')}"


def _decode(model_cls: Type[M], body: Body, *, status: Optional[int], vendor: Optional[str], model: Optional[str]) -> M:
    data = load_json(body)
    if is_error_envelope(data):
        raise api_error_from_envelope(data, status=status, vendor=vendor, model=model)
    if not isinstance(data, Mapping):
        raise MalformedResponse(f"expected a JSON object, got {type(data).__name__}", vendor=vendor, model=model)
    try:
        return model_cls.model_validate(dict(data))
    except ValidationError as exc:
        raise MalformedResponse(_describe(exc), vendor=vendor, model=model, raw=exc) from exc


def decode_response(
    body: Body,
    *,
    status: Optional[int] = None,
    vendor: Optional[str] = None,
    model: Optional[str] = None,
) -> ChatCompletionResponse:
    """Decode one non-streaming body into a :class:`ChatCompletionResponse`.

    Raises:
        ApiError: the body is the service's error envelope.
        MalformedResponse: the body does not match the response schema.
    """
    return _decode(ChatCompletionResponse, body, status=status, vendor=vendor, model=model)


def decode_model_list(
    body: Body,
    *,
    status: Optional[int] = None,
    vendor: Optional[str] = None,
) -> ModelList:
    """Decode a ``GET /models`` body (same error rules as :func:`decode_response`)."""
    return _decode(ModelList, body, status=status, vendor=vendor, model=None)


__all__ = [
    "Usage",
    "ResponseMessage",
    "Choice",
    "ChatCompletionResponse",
    "ModelInfo",
    "ModelList",
    "decode_response",
    "decode_model_list",
    "api_error_from_envelope",
    "is_error_envelope",
    "load_json",
]
