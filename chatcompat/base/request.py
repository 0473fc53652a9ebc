"""
Chat completion request and its builder.

Purpose
-------
``ChatCompletionRequest`` is the immutable, validated body of a
``POST {base}/chat/completions`` call. It is only produced by
``ChatCompletionRequestBuilder.build()``, by :func:`build_request` or by
``ChatCompletionRequest.from_payload()``. The rules below, and the message,
function and parameter-schema rules, run as model validators, so every path
enforces them.

Validation
----------
- ``model`` and at least one message are required (``MissingField``).
- Sampling parameters are range-checked by the model fields; a violation is
  reported as ``InvalidValue(<field>, ...)``.
- Tool names must be unique; ``tool_choice`` may name only a declared tool.
- ``stop`` holds at most four sequences.
- ``stream_options`` is only accepted on streaming requests.

Serialization
-------------
``to_payload()`` returns the wire mapping with unset fields omitted;
``from_payload()`` parses it back, so the two round-trip losslessly. Unknown
keys are rejected with ``InvalidValue``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, model_validator

from .errors import InvalidValue, MissingField
from .logging import get_logger, log_event
from .schema import Function, Message, Tool
from .schema.validation import STRICT, to_wire, validated

_logger = get_logger("request")

MAX_STOP_SEQUENCES = 4

ToolChoiceMode = Literal["none", "auto", "required"]


class ResponseFormat(BaseModel):
    model_config = STRICT

    type: Literal["text", "json_object"]


class StreamOptions(BaseModel):
    model_config = STRICT

    include_usage: bool = True


class ToolChoiceFunction(BaseModel):
    model_config = STRICT

    name: str


class ToolChoice(BaseModel):
    """Forces the model to call one named function."""

    model_config = STRICT

    type: Literal["function"] = "function"
    function: ToolChoiceFunction


class ChatCompletionRequest(BaseModel):
    model_config = STRICT

    model: str = Field(min_length=1)
    messages: Tuple[Message, ...] = Field(min_length=1)
    tools: Optional[Tuple[Tool, ...]] = None
    stream: bool = False
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    n: Optional[int] = Field(default=None, ge=1)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    presence_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    stop: Optional[Union[str, Tuple[str, ...]]] = None
    seed: Optional[int] = None
    response_format: Optional[ResponseFormat] = None
    tool_choice: Optional[Union[ToolChoiceMode, ToolChoice]] = None
    stream_options: Optional[StreamOptions] = None
    user: Optional[str] = None

    @model_validator(mode="after")
    def _check_cross_fields(self) -> "ChatCompletionRequest":
        check_request(self)
        return self

    @classmethod
    def builder(cls) -> "ChatCompletionRequestBuilder":
        return ChatCompletionRequestBuilder()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChatCompletionRequest":
        """Parse a wire mapping produced by :meth:`to_payload` (or by hand).

        Keys this package does not model are rejected rather than dropped.

        Raises:
            MissingField / InvalidValue: same rules as the builder.
        """
        return validated(cls, payload)

    def to_payload(self) -> Dict[str, Any]:
        return to_wire(self)

    def tool_names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.tools or ())

    def with_stream(self, stream: bool) -> "ChatCompletionRequest":
        """Return a copy with the stream flag forced, dropping stream options when off."""
        if stream == self.stream:
            return self
        update: Dict[str, Any] = {"stream": stream}
        if not stream:
            update["stream_options"] = None
        return self.model_copy(update=update)


def check_request(req: ChatCompletionRequest) -> None:
    """Cross-field checks that a single field constraint cannot express."""
    names = req.tool_names()
    seen = set()
    for name in names:
        if name in seen:
            raise InvalidValue("tools", f"duplicate tool name {name!r}")
        seen.add(name)

    if isinstance(req.stop, tuple):
        if len(req.stop) > MAX_STOP_SEQUENCES:
            raise InvalidValue("stop", f"at most {MAX_STOP_SEQUENCES} stop sequences are allowed")
        if not req.stop:
            raise InvalidValue("stop", "stop list must not be empty")

    if isinstance(req.tool_choice, ToolChoice):
        if req.tool_choice.function.name not in seen:
            raise InvalidValue("tool_choice", f"tool {req.tool_choice.function.name!r} is not declared")
    elif req.tool_choice == "required" and not names:
        raise InvalidValue("tool_choice", "'required' needs at least one tool")

    if req.stream_options is not None and not req.stream:
        raise InvalidValue("stream_options", "only valid on streaming requests")


def _as_tool(tool: Union[Tool, Function]) -> Tool:
    return tool if isinstance(tool, Tool) else Tool.from_function(tool)


def _tool_choice(value: str, tool_names: Iterable[str]) -> Union[str, Dict[str, Any]]:
    if value in ("none", "auto", "required"):
        return value
    if value not in set(tool_names):
        raise InvalidValue("tool_choice", f"tool {value!r} is not declared")
    return {"type": "function", "function": {"name": value}}


@dataclass(frozen=True)
class ChatCompletionRequestBuilder:
    """Immutable fluent builder; every method returns a new builder."""

    model: Optional[str] = None
    messages: Tuple[Message, ...] = ()
    tools: Tuple[Tool, ...] = ()
    stream: bool = False
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    max_tokens: Optional[int] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    stop: Optional[Union[str, Tuple[str, ...]]] = None
    seed: Optional[int] = None
    response_format: Optional[str] = None
    tool_choice: Optional[str] = None
    include_usage: Optional[bool] = None
    user: Optional[str] = None

    def with_model(self, model: str) -> "ChatCompletionRequestBuilder":
        return replace(self, model=model)

    def with_messages(self, messages: Iterable[Message]) -> "ChatCompletionRequestBuilder":
        """Append every message of ``messages`` in order."""
        return replace(self, messages=self.messages + tuple(messages))

    def add_message(self, message: Message) -> "ChatCompletionRequestBuilder":
        return replace(self, messages=self.messages + (message,))

    def with_tools(self, tools: Iterable[Union[Tool, Function]]) -> "ChatCompletionRequestBuilder":
        return replace(self, tools=self.tools + tuple(_as_tool(t) for t in tools))

    def add_tool(self, tool: Union[Tool, Function]) -> "ChatCompletionRequestBuilder":
        return replace(self, tools=self.tools + (_as_tool(tool),))

    def with_stream(self, stream: bool) -> "ChatCompletionRequestBuilder":
        return replace(self, stream=stream)

    def with_temperature(self, temperature: float) -> "ChatCompletionRequestBuilder":
        return replace(self, temperature=temperature)

    def with_top_p(self, top_p: float) -> "ChatCompletionRequestBuilder":
        return replace(self, top_p=top_p)

    def with_n(self, n: int) -> "ChatCompletionRequestBuilder":
        return replace(self, n=n)

    def with_max_tokens(self, max_tokens: int) -> "ChatCompletionRequestBuilder":
        return replace(self, max_tokens=max_tokens)

    def with_presence_penalty(self, penalty: float) -> "ChatCompletionRequestBuilder":
        return replace(self, presence_penalty=penalty)

    def with_frequency_penalty(self, penalty: float) -> "ChatCompletionRequestBuilder":
        return replace(self, frequency_penalty=penalty)

    def with_stop(self, stop: Union[str, Iterable[str]]) -> "ChatCompletionRequestBuilder":
        return replace(self, stop=stop if isinstance(stop, str) else tuple(stop))

    def add_stop(self, stop: Union[str, Iterable[str]]) -> "ChatCompletionRequestBuilder":
        """Append stop sequence(s); a single existing string becomes a list."""
        extra = (stop,) if isinstance(stop, str) else tuple(stop)
        if self.stop is None:
            return replace(self, stop=stop if isinstance(stop, str) else extra)
        current = (self.stop,) if isinstance(self.stop, str) else self.stop
        return replace(self, stop=current + extra)

    def with_seed(self, seed: int) -> "ChatCompletionRequestBuilder":
        return replace(self, seed=seed)

    def with_response_format(self, format_type: str) -> "ChatCompletionRequestBuilder":
        """``"json_object"`` or ``"text"``."""
        return replace(self, response_format=format_type)

    def with_tool_choice(self, choice: str) -> "ChatCompletionRequestBuilder":
        """``"none"``, ``"auto"``, ``"required"`` or the name of a declared tool."""
        return replace(self, tool_choice=choice)

    def with_include_usage(self, include: bool = True) -> "ChatCompletionRequestBuilder":
        """Ask for a final usage chunk (streaming requests only)."""
        return replace(self, include_usage=include)

    def with_user(self, user: str) -> "ChatCompletionRequestBuilder":
        return replace(self, user=user)

    def build(self) -> ChatCompletionRequest:
        if self.model is None:
            raise MissingField("model")
        if not self.messages:
            raise MissingField("messages")
        data: Dict[str, Any] = {
            "model": self.model,
            "messages": self.messages,
            "tools": self.tools or None,
            "stream": self.stream,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "n": self.n,
            "max_tokens": self.max_tokens,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
            "stop": self.stop,
            "seed": self.seed,
            "response_format": {"type": self.response_format} if self.response_format is not None else None,
            "tool_choice": (
                _tool_choice(self.tool_choice, (t.name for t in self.tools))
                if self.tool_choice is not None
                else None
            ),
            "stream_options": {"include_usage": self.include_usage} if self.include_usage is not None else None,
            "user": self.user,
        }
        req = validated(ChatCompletionRequest, data)
        if _logger.isEnabledFor(logging.DEBUG):
            log_event(
                _logger,
                "request.built",
                level=logging.DEBUG,
                model=req.model,
                body=json.dumps(req.to_payload(), ensure_ascii=False),
            )
        return req


def build_request(
    *,
    model: Optional[str] = None,
    messages: Iterable[Message] = (),
    tools: Iterable[Union[Tool, Function]] = (),
    stream: bool = False,
    **sampling: Any,
) -> ChatCompletionRequest:
    """Function form of :class:`ChatCompletionRequestBuilder`.

    ``sampling`` keys map onto the matching ``with_*`` methods (``temperature``,
    ``top_p``, ``n``, ``max_tokens``, ``presence_penalty``, ``frequency_penalty``,
    ``stop``, ``seed``, ``response_format``, ``tool_choice``, ``include_usage``,
    ``user``). Unknown keys raise ``InvalidValue``.
    """
    b = ChatCompletionRequestBuilder().with_messages(messages).with_tools(tools).with_stream(stream)
    if model is not None:
        b = b.with_model(model)
    for key, value in sampling.items():
        if value is None:
            continue
        setter = getattr(b, f"with_{key}", None)
        if setter is None or key in ("model", "messages", "tools", "stream"):
            raise InvalidValue(key, "unknown request parameter")
        b = setter(value)
    return b.build()


__all__ = [
    "ChatCompletionRequest",
    "ChatCompletionRequestBuilder",
    "ResponseFormat",
    "StreamOptions",
    "ToolChoice",
    "ToolChoiceFunction",
    "build_request",
    "check_request",
    "MAX_STOP_SEQUENCES",
]
