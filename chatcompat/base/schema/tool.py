"""
Function declarations offered to the model and tool calls it emits.

``Function``/``Tool`` describe what the caller offers in a request.
``FunctionCall``/``ToolCall`` describe what the model asks the caller to run;
they appear on assistant messages and are replayed in follow-up requests.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, model_validator

from ..errors import InvalidValue, MissingField
from .parameters import Parameters
from .validation import FROZEN, STRICT, rule_error, validated


def _name_problem(name: str) -> Optional[str]:
    if not name:
        return "must be non-empty"
    if any(c.isspace() for c in name):
        return "must not contain whitespace"
    return None


class FunctionCall(BaseModel):
    """Function invocation requested by the model.

    ``arguments`` is the raw JSON text exactly as the model produced it; it is
    not guaranteed to be valid JSON.
    """

    model_config = FROZEN

    name: str
    arguments: str = ""

    def parsed_arguments(self) -> Dict[str, Any]:
        """Decode ``arguments`` as a JSON object (empty text decodes to ``{}``).

        Raises:
            ValueError: when the text is not a JSON object.
        """
        if not self.arguments.strip():
            return {}
        value = json.loads(self.arguments)
        if not isinstance(value, dict):
            raise ValueError("function arguments are not a JSON object")
        return value


class ToolCall(BaseModel):
    model_config = FROZEN

    id: Optional[str] = None
    type: str = "function"
    function: FunctionCall

    @classmethod
    def builder(cls) -> "ToolCallBuilder":
        return ToolCallBuilder()


@dataclass(frozen=True)
class ToolCallBuilder:
    id: Optional[str] = None
    type: str = "function"
    name: Optional[str] = None
    arguments: str = ""

    def with_id(self, id_: str) -> "ToolCallBuilder":
        return replace(self, id=id_)

    def with_type(self, type_: str) -> "ToolCallBuilder":
        return replace(self, type=type_)

    def with_function(self, function: FunctionCall) -> "ToolCallBuilder":
        return replace(self, name=function.name, arguments=function.arguments)

    def with_name(self, name: str) -> "ToolCallBuilder":
        return replace(self, name=name)

    def with_arguments(self, arguments: Union[str, Mapping[str, Any]]) -> "ToolCallBuilder":
        """Set arguments from raw JSON text or a mapping (serialized as JSON)."""
        if not isinstance(arguments, str):
            arguments = json.dumps(dict(arguments), ensure_ascii=False)
        return replace(self, arguments=arguments)

    def build(self) -> ToolCall:
        if self.id is None:
            raise MissingField("id")
        if not self.id:
            raise InvalidValue("id", "must be non-empty")
        if self.type != "function":
            raise InvalidValue("type", f"unsupported tool call type {self.type!r}")
        if self.name is None:
            raise MissingField("function.name")
        problem = _name_problem(self.name)
        if problem:
            raise InvalidValue("function.name", problem)
        return validated(
            ToolCall,
            {"id": self.id, "type": self.type, "function": {"name": self.name, "arguments": self.arguments}},
        )


class Function(BaseModel):
    """Function declaration: name, description and parameter schema."""

    model_config = STRICT

    name: str
    description: Optional[str] = None
    parameters: Optional[Parameters] = None

    @model_validator(mode="after")
    def _check_name(self) -> "Function":
        problem = _name_problem(self.name)
        if problem:
            raise rule_error("name", problem)
        return self

    @classmethod
    def builder(cls) -> "FunctionBuilder":
        return FunctionBuilder()


@dataclass(frozen=True)
class FunctionBuilder:
    name: Optional[str] = None
    description: Optional[str] = None
    parameters: Optional[Parameters] = None

    def with_name(self, name: str) -> "FunctionBuilder":
        return replace(self, name=name)

    def with_description(self, description: str) -> "FunctionBuilder":
        return replace(self, description=description)

    def with_parameters(self, parameters: Parameters) -> "FunctionBuilder":
        return replace(self, parameters=parameters)

    def build(self) -> Function:
        if self.name is None:
            raise MissingField("name")
        return validated(
            Function,
            {"name": self.name, "description": self.description, "parameters": self.parameters},
        )


class Tool(BaseModel):
    """A tool offered in a request; only ``function`` tools exist today."""

    model_config = STRICT

    type: Literal["function"] = "function"
    function: Function

    @classmethod
    def from_function(cls, function: Function) -> "Tool":
        return cls(function=function)

    @property
    def name(self) -> str:
        return self.function.name


__all__ = [
    "FunctionCall",
    "ToolCall",
    "ToolCallBuilder",
    "Function",
    "FunctionBuilder",
    "Tool",
]
