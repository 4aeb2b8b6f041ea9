"""OpenAPI 3 document records.

Plain mutable dataclasses, filled in at registration time and rendered
with ``to_dict()``. Empty optional fields are omitted from the output,
so a minimal declaration produces a minimal document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

REF_PREFIX = "#/components/schemas/"


def _prune(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is empty (``None``, ``""``, ``[]``, ``{}``, ``False``)."""
    return {key: value for key, value in data.items() if value not in (None, "", [], {}, False)}


@dataclass(slots=True)
class Schema:
    """A schema object, inline or as a named component."""

    type: str = ""
    format: str = ""
    ref: str = ""
    properties: dict[str, Schema] = field(default_factory=dict)
    items: Schema | None = None
    required: list[str] = field(default_factory=list)

    @classmethod
    def reference(cls, name: str) -> Schema:
        return cls(ref=REF_PREFIX + name)

    @classmethod
    def array_of(cls, items: Schema) -> Schema:
        return cls(type="array", items=items)

    def to_dict(self) -> dict[str, Any]:
        if self.ref:
            return {"$ref": self.ref}
        return _prune(
            {
                "type": self.type,
                "format": self.format,
                "properties": {name: prop.to_dict() for name, prop in self.properties.items()},
                "items": self.items.to_dict() if self.items is not None else None,
                "required": list(self.required),
            }
        )


@dataclass(slots=True)
class MediaType:
    schema: Schema | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.schema is None:
            return {}
        return {"schema": self.schema.to_dict()}


@dataclass(slots=True)
class ResponseEntry:
    """One documented response of an operation."""

    description: str = ""
    content: dict[str, MediaType] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        # description is required by OpenAPI, even when empty
        result: dict[str, Any] = {"description": self.description}
        if self.content:
            result["content"] = {ct: media.to_dict() for ct, media in self.content.items()}
        return result


@dataclass(slots=True)
class RequestBody:
    description: str = ""
    content: dict[str, MediaType] = field(default_factory=dict)
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        result = _prune({"description": self.description, "required": self.required})
        result["content"] = {ct: media.to_dict() for ct, media in self.content.items()}
        return result


@dataclass(slots=True)
class Parameter:
    """A path, query, header or cookie parameter."""

    name: str
    location: str = "query"
    description: str = ""
    required: bool = False
    schema: Schema | None = None

    def to_dict(self) -> dict[str, Any]:
        return _prune(
            {
                "name": self.name,
                "in": self.location,
                "description": self.description,
                "required": self.required,
                "schema": self.schema.to_dict() if self.schema is not None else None,
            }
        )


@dataclass(slots=True)
class Operation:
    """A single method on a single path."""

    operation_id: str = ""
    tags: list[str] = field(default_factory=list)
    summary: str = ""
    description: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    request_body: RequestBody | None = None
    responses: dict[str, ResponseEntry] = field(default_factory=dict)
    security: list[dict[str, list[str]]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result = _prune(
            {
                "tags": list(self.tags),
                "summary": self.summary,
                "description": self.description,
                "operationId": self.operation_id,
                "parameters": [param.to_dict() for param in self.parameters],
                "requestBody": self.request_body.to_dict() if self.request_body else None,
                "security": [dict(item) for item in self.security],
            }
        )
        result["responses"] = {code: entry.to_dict() for code, entry in self.responses.items()}
        return result


@dataclass(frozen=True, slots=True)
class Info:
    title: str
    version: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        result = {"title": self.title, "version": self.version}
        if self.description:
            result["description"] = self.description
        return result


@dataclass(frozen=True, slots=True)
class Server:
    url: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _prune({"url": self.url, "description": self.description})
