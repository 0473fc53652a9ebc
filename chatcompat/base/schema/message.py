"""
Chat message value type and its builder.

``Message.content`` is either a plain string or a tuple of
:class:`~chatcompat.base.schema.content.ContentPart`. It may be absent or empty
only on an assistant message that carries tool calls. A ``tool`` message
answers one tool call and must name it through ``tool_call_id``.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from pydantic import BaseModel, model_validator

from ..errors import InvalidValue, MissingField
from .content import ContentPart, ImageUrl
from .tool import ToolCall
from .validation import STRICT, rule_error, validated


class Role(str, Enum):
    """Author role of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


Content = Union[str, Tuple[ContentPart, ...]]
ContentInput = Union[str, ContentPart, ImageUrl, Iterable[ContentPart]]


class Message(BaseModel):
    model_config = STRICT

    role: Role
    content: Optional[Content] = None
    name: Optional[str] = None
    tool_calls: Optional[Tuple[ToolCall, ...]] = None
    tool_call_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_role_rules(self) -> "Message":
        assistant = self.role is Role.ASSISTANT
        if self.tool_calls and not assistant:
            raise rule_error("tool_calls", "only assistant messages carry tool calls")
        if self.role is Role.TOOL and not self.tool_call_id:
            raise rule_error("tool_call_id", "tool messages must name the call they answer", missing=True)
        if self.tool_call_id is not None and self.role is not Role.TOOL:
            raise rule_error("tool_call_id", "only tool messages answer a tool call")
        if _is_empty(self.content) and not (assistant and self.tool_calls):
            if self.content is None:
                raise rule_error("content", "content is required", missing=True)
            raise rule_error("content", "empty content is only allowed on assistant tool-call messages")
        return self

    @classmethod
    def builder(cls) -> "MessageBuilder":
        return MessageBuilder()

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls.builder().with_role(Role.SYSTEM).with_content(text).build()

    @classmethod
    def user(cls, content: ContentInput) -> "Message":
        return cls.builder().with_role(Role.USER).with_content(content).build()

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls.builder().with_role(Role.ASSISTANT).with_content(text).build()

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "Message":
        """Tool result message answering the call ``tool_call_id``."""
        return cls.builder().with_role(Role.TOOL).with_content(content).with_tool_call_id(tool_call_id).build()


def _to_content(content: ContentInput) -> Content:
    if isinstance(content, str):
        return content
    if isinstance(content, ContentPart):
        return (content,)
    if isinstance(content, ImageUrl):
        return (ContentPart.of_image(content),)
    return tuple(content)


def _is_empty(content: Optional[Content]) -> bool:
    if content is None:
        return True
    if isinstance(content, str):
        return content == ""
    return len(content) == 0 or all(p.is_empty() for p in content)


@dataclass(frozen=True)
class MessageBuilder:
    role: Optional[Union[Role, str]] = None
    content: Optional[Content] = None
    name: Optional[str] = None
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None

    def with_role(self, role: Union[Role, str]) -> "MessageBuilder":
        return replace(self, role=role)

    def with_content(self, content: ContentInput) -> "MessageBuilder":
        return replace(self, content=_to_content(content))

    def add_content_part(self, part: Union[ContentPart, ImageUrl, str]) -> "MessageBuilder":
        """Append one part; existing text content becomes the first text part."""
        if isinstance(part, str):
            part = ContentPart.of_text(part)
        elif isinstance(part, ImageUrl):
            part = ContentPart.of_image(part)
        if self.content is None:
            current: Tuple[ContentPart, ...] = ()
        elif isinstance(self.content, str):
            current = (ContentPart.of_text(self.content),)
        else:
            current = self.content
        return replace(self, content=current + (part,))

    def with_name(self, name: str) -> "MessageBuilder":
        return replace(self, name=name)

    def with_tool_call_id(self, tool_call_id: str) -> "MessageBuilder":
        return replace(self, tool_call_id=tool_call_id)

    def with_tool_calls(self, tool_calls: Iterable[ToolCall]) -> "MessageBuilder":
        return replace(self, tool_calls=tuple(tool_calls))

    def add_tool_call(self, tool_call: ToolCall) -> "MessageBuilder":
        return replace(self, tool_calls=self.tool_calls + (tool_call,))

    def build(self) -> Message:
        if self.role is None:
            raise MissingField("role")
        try:
            role = Role(self.role)
        except ValueError:
            raise InvalidValue("role", f"unknown role {self.role!r}") from None

        return validated(
            Message,
            {
                "role": role,
                "content": self.content,
                "name": self.name,
                "tool_calls": self.tool_calls or None,
                "tool_call_id": self.tool_call_id,
            },
        )


__all__ = ["Role", "Message", "MessageBuilder", "Content", "ContentInput"]
