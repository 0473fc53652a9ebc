"""Immutable request value types and their fluent builders.

Every builder is itself immutable: ``with_*``/``add_*`` return a new builder
and ``build()`` validates, returning the frozen value or raising
``MissingField``/``InvalidValue``.
"""

from .content import ContentPart, ImageUrl, ImageUrlBuilder
from .message import Message, MessageBuilder, Role
from .parameters import (
    ParameterProperty,
    ParameterPropertyBuilder,
    Parameters,
    ParametersBuilder,
    ParameterType,
)
from .tool import Function, FunctionBuilder, FunctionCall, Tool, ToolCall, ToolCallBuilder
from .validation import to_wire, validated

__all__ = [
    "ContentPart",
    "ImageUrl",
    "ImageUrlBuilder",
    "Message",
    "MessageBuilder",
    "Role",
    "ParameterProperty",
    "ParameterPropertyBuilder",
    "Parameters",
    "ParametersBuilder",
    "ParameterType",
    "Function",
    "FunctionBuilder",
    "FunctionCall",
    "Tool",
    "ToolCall",
    "ToolCallBuilder",
    "to_wire",
    "validated",
]
