"""OpenAPI document synthesis.

Routes registered with a ``Docs`` declaration, on a router with
documentation enabled, end up in the document ``Router.openapi()``
returns::

    from perch.openapi import DocOut, Docs

    @router.get("/users", docs=Docs(outputs={"200": DocOut(object=list[User])}))
    def list_users(): ...

The synthesizer itself lives in ``perch.openapi.synthesizer``.
"""

from perch.openapi.docs import DocIn, DocOut, Docs
from perch.openapi.models import (
    Info,
    MediaType,
    Operation,
    Parameter,
    RequestBody,
    ResponseEntry,
    Schema,
    Server,
)

__all__ = [
    "DocIn",
    "DocOut",
    "Docs",
    "Info",
    "MediaType",
    "Operation",
    "Parameter",
    "RequestBody",
    "ResponseEntry",
    "Schema",
    "Server",
]
