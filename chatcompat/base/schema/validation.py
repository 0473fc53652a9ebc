"""Bridge between pydantic validation and the builder error taxonomy.

Value types are frozen pydantic models, so field-level constraints (numeric
ranges, enum membership, required keys) are declared on the models and the
cross-field rules run as ``model_validator(mode="after")`` hooks. Every
construction path (builders, ``from_payload``, ``model_validate``) therefore
enforces the same rules. Builders and parsers call :func:`validated` instead of
instantiating models directly so that a ``pydantic.ValidationError`` surfaces
as ``MissingField`` or ``InvalidValue`` naming the offending field.
"""
from __future__ import annotations

from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import PydanticCustomError

from ..errors import InvalidValue, MissingField

M = TypeVar("M", bound=BaseModel)

FROZEN = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

# request-side models reject keys they do not model, so parsing is lossless
STRICT = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

_MISSING_TYPES = ("missing", "missing_field")


def rule_error(field: str, reason: str, *, missing: bool = False) -> PydanticCustomError:
    """Build the error a model validator raises for a broken cross-field rule.

    ``field`` is appended to the error location so the builder error names the
    field inside the model, not the model itself.
    """
    return PydanticCustomError("missing_field" if missing else "rule_violation", reason, {"field": field})


def field_path(loc: tuple) -> str:
    """Render a pydantic error location as a dotted field path."""
    return ".".join(str(p) for p in loc)


def validated(model_cls: Type[M], data: Mapping[str, Any]) -> M:
    """Validate ``data`` into ``model_cls`` or raise a builder error.

    Only the first pydantic error is reported; callers fix one field at a time.
    """
    try:
        return model_cls.model_validate(dict(data))
    except ValidationError as exc:
        err = exc.errors()[0]
        loc = tuple(err.get("loc", ()))
        ctx = err.get("ctx") or {}
        if "field" in ctx:
            loc = loc + (ctx["field"],)
        path = field_path(loc) or model_cls.__name__
        if err.get("type") in _MISSING_TYPES:
            raise MissingField(path) from exc
        if err.get("type") == "extra_forbidden":
            raise InvalidValue(path, "unknown field") from exc
        raise InvalidValue(path, err.get("msg", "invalid value")) from exc


def to_wire(model: BaseModel) -> dict:
    """Serialize a model to its JSON wire form, omitting unset optional fields."""
    return model.model_dump(mode="json", exclude_none=True, by_alias=True)


__all__ = ["FROZEN", "STRICT", "rule_error", "validated", "to_wire", "field_path"]
