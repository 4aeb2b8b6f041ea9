"""Per-route documentation declarations.

A ``Docs`` value travels with a route registration and is consumed once,
by the synthesizer. Nothing here is read while serving requests.

Usage::

    @dataclass
    class User:
        id: int
        name: str = field(metadata={"alias": "full_name"})

    @router.get("/users/{id}", docs=Docs(
        summary="Fetch one user",
        tags=("users",),
        outputs={"200": DocOut(object=User, description="The user")},
    ))
    def get_user(id: int): ...

``object`` may be a type (``User``, ``list[User]``, ``str``) or a sample
value (``User(1, "a")``, ``[User(1, "a")]``, ``"text"``).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from perch.openapi.models import Parameter, RequestBody, ResponseEntry


@dataclass(frozen=True, slots=True)
class DocIn:
    """A declared request body for one content type."""

    object: Any
    required: bool = False


@dataclass(frozen=True, slots=True)
class DocOut:
    """A declared response for one status code."""

    content_type: str = "application/json"
    description: str = ""
    object: Any = None


@dataclass(frozen=True, slots=True)
class Docs:
    """Human metadata plus the declared shapes of a route's bodies.

    ``request_body`` and ``responses`` are used as given. ``inputs`` and
    ``outputs`` are translated into schemas and replace them when present.
    """

    tags: tuple[str, ...] = ()
    summary: str = ""
    description: str = ""
    parameters: tuple[Parameter, ...] = ()
    request_body: RequestBody | None = None
    responses: Mapping[str, ResponseEntry] = field(default_factory=dict)
    security: tuple[Mapping[str, list[str]], ...] = ()

    inputs: Mapping[str, DocIn] = field(default_factory=dict)
    outputs: Mapping[str, DocOut] = field(default_factory=dict)
