"""OpenAPI synthesis from per-route declarations.

Operations and schema components are built eagerly, at registration
time, and stored in the ``SharedRegistry``. ``OPTIONS`` discovery
handlers are installed once, on the first request, from the method sets
known at that moment. ``snapshot()`` renders the whole document.

Two reconciliation policies apply and are kept apart:

- re-documenting a known method + pattern replaces its ``Operation``
- a schema component name, once registered, is never replaced, even by
  a later type of the same name with a different shape
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from perch.errors import UnsupportedDeclaredType
from perch.http.request import Request
from perch.http.response import Response
from perch.mux.pattern import strip_exact_marker
from perch.mux.servemux import Endpoint, ServeMux
from perch.openapi.docs import DocIn, DocOut, Docs
from perch.openapi.models import MediaType, Operation, RequestBody, ResponseEntry, Schema
from perch.openapi.schema import Translation, translate
from perch.registry import SharedRegistry

logger = logging.getLogger("perch.openapi")

DISCOVERY_METHOD = "OPTIONS"

# A letter not preceded by a letter, digit or underscore
_WORD_START = re.compile(r"(?<![A-Za-z0-9_])[a-z]")


def operation_id(method: str, path: str) -> str:
    """Deterministic operation id: method + capitalized path segments.

    ``("GET", "/users/{id}")`` -> ``"GETUsersId"``; the root path gives
    ``"GETRoot"``. Every word inside a segment is capitalized, so
    ``/user-list`` gives ``User-List``.
    """
    words = []
    for segment in strip_exact_marker(path).split("/"):
        word = segment.strip("{}").removesuffix("...")
        if word:
            words.append(_WORD_START.sub(lambda m: m.group().upper(), word))
    return method.upper() + ("".join(words) or "Root")


def _options_endpoint(allow: str) -> Endpoint:
    async def options(request: Request) -> Response:
        return Response(body="", status=204).with_header("Allow", allow)

    return options


class DocSynthesizer:
    """Builds the OpenAPI document held by a ``SharedRegistry``."""

    __slots__ = ("_registry",)

    def __init__(self, registry: SharedRegistry) -> None:
        self._registry = registry

    def register_operation(self, method: str, pattern: str, docs: Docs) -> Operation:
        """Attach *docs* to *method* on *pattern*, replacing earlier docs."""
        method = method.upper()
        registry = self._registry

        with registry.lock.write():
            responses, components = self.translate_outputs(docs.outputs)
            request_body, input_components = self.translate_inputs(docs.inputs)

            operation = Operation(
                operation_id=operation_id(method, pattern),
                tags=list(docs.tags),
                summary=docs.summary,
                description=docs.description,
                parameters=list(docs.parameters),
                request_body=request_body if docs.inputs else docs.request_body,
                responses=responses if docs.outputs else dict(docs.responses),
                security=[dict(item) for item in docs.security],
            )

            for name, schema in (*components.items(), *input_components.items()):
                # First registration of a name wins
                registry.schemas.setdefault(name, schema)

            registry.descriptor(pattern).operations[method] = operation

        logger.debug("documented %s %s as %s", method, pattern, operation.operation_id)
        return operation

    # -- Translation --

    def _translate(self, declared: Any) -> Translation:
        try:
            return translate(declared, self._registry.schemas)
        except UnsupportedDeclaredType as exc:
            logger.warning("documenting %r as a string: %s", declared, exc)
        except Exception:
            logger.warning("documenting %r as a string", declared, exc_info=True)
        return Translation(Schema(type="string"))

    def translate_outputs(
        self, outputs: Mapping[str, DocOut]
    ) -> tuple[dict[str, ResponseEntry], dict[str, Schema]]:
        """Response entries per status code, plus the components they define."""
        responses: dict[str, ResponseEntry] = {}
        components: dict[str, Schema] = {}

        for status, out in outputs.items():
            schema = None
            if out.object is not None:
                translation = self._translate(out.object)
                schema = translation.schema
                for name, component in translation.components.items():
                    components.setdefault(name, component)
            responses[str(status)] = ResponseEntry(
                description=out.description,
                content={out.content_type: MediaType(schema=schema)},
            )

        return responses, components

    def translate_inputs(self, inputs: Mapping[str, DocIn]) -> tuple[RequestBody | None, dict[str, Schema]]:
        """A request body with one entry per content type, plus its components."""
        if not inputs:
            return None, {}

        body = RequestBody(required=any(doc_in.required for doc_in in inputs.values()))
        components: dict[str, Schema] = {}

        for content_type, doc_in in inputs.items():
            translation = self._translate(doc_in.object)
            for name, component in translation.components.items():
                components.setdefault(name, component)
            body.content[content_type] = MediaType(schema=translation.schema)

        return body, components

    # -- OPTIONS discovery --

    def synthesize_options_handlers(self, mux: ServeMux) -> int:
        """Install an ``OPTIONS`` handler on every known pattern, once.

        Thread-safe with double-check locking: concurrent first requests
        block on the write lock, and all but the first find the work done.
        Patterns that already have an ``OPTIONS`` route are left alone.
        Installed handlers are not recorded in the registry, so they stay
        out of the document and out of registry-computed ``Allow`` values.
        Returns the number of handlers installed.
        """
        registry = self._registry
        if registry.options_synthesized:
            return 0

        installed = 0
        with registry.lock.write():
            if registry.options_synthesized:
                return 0

            for desc in registry.paths.values():
                methods = desc.methods
                if not methods or DISCOVERY_METHOD in methods:
                    continue
                allow = ", ".join((*methods, DISCOVERY_METHOD))
                mux.handle(DISCOVERY_METHOD, desc.pattern, _options_endpoint(allow))
                logger.debug("OPTIONS %s -> Allow: %s", desc.pattern, allow)
                installed += 1

            registry.options_synthesized = True

        logger.info("installed %d OPTIONS handlers", installed)
        return installed

    # -- Rendering --

    def snapshot(self) -> dict[str, Any]:
        """The full OpenAPI document as JSON-ready data. Never mutates."""
        registry = self._registry

        with registry.lock.read():
            paths: dict[str, dict[str, Any]] = {}
            for desc in registry.paths.values():
                for method in desc.methods:
                    operation = desc.operations[method]
                    if operation is None:
                        continue
                    paths.setdefault(desc.path, {})[method.lower()] = operation.to_dict()

            document: dict[str, Any] = {
                "openapi": registry.openapi_version,
                "info": registry.info.to_dict(),
            }
            if registry.servers:
                document["servers"] = [server.to_dict() for server in registry.servers]
            document["paths"] = paths
            document["components"] = (
                {"schemas": {name: schema.to_dict() for name, schema in registry.schemas.items()}}
                if registry.schemas
                else {}
            )

        return document


