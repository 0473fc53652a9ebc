"""
JSON-schema subset describing function parameters.

``Parameters`` is the top-level object schema attached to a function. Each
property is a :class:`ParameterProperty` with a primitive or container type;
``array`` properties may describe their ``items`` and ``object`` properties
may nest their own ``properties``/``required``.

Builders keep properties in insertion order so that serialized schemas are
deterministic. Re-adding a property name replaces the earlier definition in
place.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from pydantic import BaseModel, model_validator

from ..errors import InvalidValue, MissingField
from .validation import STRICT, rule_error, to_wire, validated


class ParameterType(str, Enum):
    """Property types accepted in a parameter schema."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class ParameterProperty(BaseModel):
    model_config = STRICT

    type: ParameterType
    description: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None
    items: Optional["ParameterProperty"] = None
    properties: Optional[Dict[str, "ParameterProperty"]] = None
    required: Optional[Tuple[str, ...]] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "ParameterProperty":
        if self.items is not None and self.type is not ParameterType.ARRAY:
            raise rule_error("items", "only array properties may declare items")
        if self.properties is not None and self.type is not ParameterType.OBJECT:
            raise rule_error("properties", "only object properties may nest properties")
        if self.enum is not None and not self.enum:
            raise rule_error("enum", "must list at least one value")
        missing = _undeclared(self.required or (), self.properties or {})
        if missing is not None:
            raise rule_error("required", f"required name {missing!r} is not a declared property")
        return self

    @classmethod
    def builder(cls) -> "ParameterPropertyBuilder":
        return ParameterPropertyBuilder()


class Parameters(BaseModel):
    """Top-level parameter schema of a function (always ``type: object``)."""

    model_config = STRICT

    type: str = "object"
    properties: Dict[str, ParameterProperty] = {}
    required: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_schema(self) -> "Parameters":
        if self.type != "object":
            raise rule_error("type", "parameter schema must be of type 'object'")
        if any(not name for name in self.properties):
            raise rule_error("properties", "property names must be non-empty")
        missing = _undeclared(self.required, self.properties)
        if missing is not None:
            raise rule_error("required", f"required name {missing!r} is not a declared property")
        return self

    @classmethod
    def builder(cls) -> "ParametersBuilder":
        return ParametersBuilder()

    def to_schema(self) -> Dict[str, Any]:
        return to_wire(self)


def _merge_properties(pairs: Iterable[Tuple[str, ParameterProperty]]) -> Dict[str, ParameterProperty]:
    merged: Dict[str, ParameterProperty] = {}
    for name, prop in pairs:
        merged[name] = prop
    return merged


def _undeclared(required: Iterable[str], declared: Dict[str, Any]) -> Optional[str]:
    for name in required:
        if name not in declared:
            return name
    return None


@dataclass(frozen=True)
class ParameterPropertyBuilder:
    type: Optional[Union[ParameterType, str]] = None
    description: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None
    items: Optional[ParameterProperty] = None
    properties: Optional[Parameters] = None

    def with_type(self, type_: Union[ParameterType, str]) -> "ParameterPropertyBuilder":
        return replace(self, type=type_)

    def with_description(self, description: str) -> "ParameterPropertyBuilder":
        return replace(self, description=description)

    def with_enum(self, values: Iterable[Any]) -> "ParameterPropertyBuilder":
        return replace(self, enum=tuple(values))

    def with_items(self, items: ParameterProperty) -> "ParameterPropertyBuilder":
        return replace(self, items=items)

    def with_properties(self, properties: Parameters) -> "ParameterPropertyBuilder":
        """Nest an object schema; only valid for ``object`` properties."""
        return replace(self, properties=properties)

    def build(self) -> ParameterProperty:
        if self.type is None:
            raise MissingField("type")
        try:
            type_ = ParameterType(self.type)
        except ValueError:
            raise InvalidValue("type", f"unknown parameter type {self.type!r}") from None
        data: Dict[str, Any] = {
            "type": type_,
            "description": self.description,
            "enum": self.enum,
            "items": self.items,
        }
        if self.properties is not None:
            data["properties"] = self.properties.properties
            data["required"] = self.properties.required or None
        return validated(ParameterProperty, data)


@dataclass(frozen=True)
class ParametersBuilder:
    type: str = "object"
    properties: Tuple[Tuple[str, ParameterProperty], ...] = ()
    required: Tuple[str, ...] = ()

    def add_property(
        self,
        name: str,
        prop: ParameterProperty,
        required: bool = False,
    ) -> "ParametersBuilder":
        nxt = replace(self, properties=self.properties + ((name, prop),))
        return nxt.add_required(name) if required else nxt

    def add_required(self, name: str) -> "ParametersBuilder":
        if name in self.required:
            return self
        return replace(self, required=self.required + (name,))

    def build(self) -> Parameters:
        return validated(
            Parameters,
            {"type": self.type, "properties": _merge_properties(self.properties), "required": self.required},
        )


ParameterProperty.model_rebuild()

__all__ = [
    "ParameterType",
    "ParameterProperty",
    "ParameterPropertyBuilder",
    "Parameters",
    "ParametersBuilder",
]
