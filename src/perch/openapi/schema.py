"""Declared type to OpenAPI schema translation.

A declaration names a shape either as a type or as a sample value:

- ``str``, ``int``, ``float``, ``bool`` (or a value of one) -> inline type
- ``list[T]`` (or a non-empty list of ``T`` values) -> inline array
- an object type or instance -> named component, referenced by ``$ref``

Object types are dataclasses, classes that describe themselves with a
``__schema_properties__()`` classmethod, or plain annotated classes::

    class Point:
        @classmethod
        def __schema_properties__(cls):
            return {"x": float, "y": float, "label": "string"}

Field names prefer ``dataclasses.field(metadata={"alias": ...})`` over
the attribute name. Anything the translator cannot decompose raises
``UnsupportedDeclaredType``.
"""

import dataclasses
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union, get_args, get_origin, get_type_hints

from perch.errors import UnsupportedDeclaredType
from perch.openapi.models import Schema

# Python type -> JSON Schema type
_TYPE_MAP: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
}

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True, slots=True)
class Translation:
    """The inline schema for a declaration plus the components it defines."""

    schema: Schema
    components: dict[str, Schema] = field(default_factory=dict)


def translate(declared: Any, known: Mapping[str, Schema] | None = None) -> Translation:
    """Translate a declared type or sample value.

    Components whose name is already in *known* are referenced but not
    derived again.
    """
    known = known or {}

    primitive = _primitive(declared)
    if primitive is not None:
        return Translation(Schema(type=primitive))

    item = _sequence_item(declared)
    if item is not None:
        primitive = _primitive(item)
        if primitive is not None:
            return Translation(Schema.array_of(Schema(type=primitive)))
        cls = _object_type(item)
        return Translation(Schema.array_of(Schema.reference(cls.__name__)), _component(cls, known))

    cls = _object_type(declared)
    return Translation(Schema.reference(cls.__name__), _component(cls, known))


def object_schema(cls: type) -> Schema:
    """Derive the component schema for an object type."""
    if hasattr(cls, "__schema_properties__"):
        declared = cls.__schema_properties__()
        properties = {
            name: Schema(type=value) if isinstance(value, str) else Schema(type=field_type(value))
            for name, value in declared.items()
        }
        return Schema(type="object", properties=properties)

    try:
        hints = get_type_hints(cls)
    except Exception as exc:
        msg = f"Cannot resolve annotations of {cls.__name__}: {exc}"
        raise UnsupportedDeclaredType(msg) from exc

    properties: dict[str, Schema] = {}
    required: list[str] = []

    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            name = f.metadata.get("alias", f.name)
            properties[name] = Schema(type=field_type(hints.get(f.name, Any)))
            # Required unless it has a default
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                required.append(name)
    else:
        for name, annotation in hints.items():
            if get_origin(annotation) is typing.ClassVar:
                continue
            properties[name] = Schema(type=field_type(annotation))

    return Schema(type="object", properties=properties, required=required)


def field_type(annotation: Any) -> str:
    """JSON type name for one field annotation. Unknown types are strings."""
    if _is_optional(annotation):
        annotation = _unwrap_optional(annotation)

    if annotation in _TYPE_MAP:
        return _TYPE_MAP[annotation]

    origin = get_origin(annotation) or annotation
    if origin in _SEQUENCE_TYPES:
        return "array"
    if origin is dict:
        return "object"
    if isinstance(annotation, type) and _is_object_type(annotation):
        return "object"

    # Fallback
    return "string"


def _component(cls: type, known: Mapping[str, Schema]) -> dict[str, Schema]:
    if cls.__name__ in known:
        return {}
    return {cls.__name__: object_schema(cls)}


def _primitive(declared: Any) -> str | None:
    if isinstance(declared, type):
        return _TYPE_MAP.get(declared)
    # bool before int: bool is an int subclass
    for py_type in (bool, str, int, float):
        if isinstance(declared, py_type):
            return _TYPE_MAP[py_type]
    return None


def _sequence_item(declared: Any) -> Any | None:
    """The item type of a sequence declaration, or None if not a sequence."""
    origin = get_origin(declared)
    if origin in _SEQUENCE_TYPES:
        args = [a for a in get_args(declared) if a is not Ellipsis]
        if not args:
            msg = f"{declared!r} does not name its item type"
            raise UnsupportedDeclaredType(msg)
        return args[0]

    if isinstance(declared, _SEQUENCE_TYPES):
        if not declared:
            msg = "an empty sample does not reveal its item type"
            raise UnsupportedDeclaredType(msg)
        return type(next(iter(declared)))

    return None


def _object_type(declared: Any) -> type:
    cls = declared if isinstance(declared, type) else type(declared)
    if not _is_object_type(cls):
        msg = f"{cls.__name__} cannot be described as an object"
        raise UnsupportedDeclaredType(msg)
    return cls


def _is_object_type(cls: type) -> bool:
    if cls in _TYPE_MAP or cls in _SEQUENCE_TYPES or cls is dict or cls is type(None):
        return False
    if dataclasses.is_dataclass(cls) or hasattr(cls, "__schema_properties__"):
        return True
    # Plain annotated classes, excluding builtins
    if cls.__module__ == "builtins":
        return False
    try:
        return bool(get_type_hints(cls))
    except Exception:
        # Annotated, but unresolvable; object_schema reports the cause
        return True


def _is_optional(annotation: Any) -> bool:
    """Check if an annotation is X | None."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(annotation)
    return False


def _unwrap_optional(annotation: Any) -> Any:
    """Extract the non-None type from X | None."""
    non_none = [a for a in get_args(annotation) if a is not type(None)]
    if len(non_none) == 1:
        return non_none[0]
    # Multi-type union falls back to string
    return str
