"""Router: grouped routes, inherited middleware, status overrides.

A ``Router`` is one node of a route tree. The root owns the host
multiplexer and a ``SharedRegistry``; every group created from it gets a
reference to both, plus its own base path and a copy of the creator's
middleware list. All registrations, from any node, land in the same
multiplexer and registry.

Basic usage::

    from perch import Router

    router = Router()

    @router.get("/{$}")
    def index():
        return "Welcome"

    def users(api: Router) -> None:
        @api.get("/{id}")
        def get_user(id: int):
            return {"id": id}

    router.group("/users", users)

    @router.not_found
    def missing(request):
        return f"nothing at {request.path}"

The root router is an ASGI 3 application.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from http import HTTPStatus
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import Handler, StatusHandler
from perch.config import RouterConfig
from perch.errors import ConfigurationError, HTTPError, RouteConflict
from perch.http.request import Request
from perch.http.response import Redirect
from perch.http.writer import ASGIResponseWriter, ResponseWriter
from perch.intercept import HeaderEraser, StatusInterceptWriter
from perch.middleware.protocol import Middleware, compose
from perch.mux.servemux import MuxRoute, ServeMux, default_error_response
from perch.openapi.docs import Docs
from perch.openapi.synthesizer import DocSynthesizer
from perch.registry import SharedRegistry
from perch.server.handler import call_status_handler, make_endpoint
from perch.server.negotiation import negotiate
from perch.server.sender import write_response

logger = logging.getLogger("perch.server")

# Set by the multiplexer's default error responses; Allow is recomputed
_SWALLOWED_HEADERS = ("content-type", "content-length", "x-content-type-options", "allow")


class Router:
    """One node of a route tree.

    Construct the root directly; create children with ``group()``.
    """

    __slots__ = (
        "_mux",
        "_registry",
        "_synthesizer",
        "base_path",
        "config",
        "docs_enabled",
        "middlewares",
        "parent",
        "redirect_trailing_slash",
    )

    def __init__(self, config: RouterConfig | None = None, *, mux: ServeMux | None = None) -> None:
        self.config = config or RouterConfig()
        self._mux = mux if mux is not None else ServeMux()
        self._registry = SharedRegistry(self.config)
        self._synthesizer = DocSynthesizer(self._registry)

        self.base_path = ""
        self.middlewares: list[Middleware] = []
        self.parent: Router | None = None
        self.docs_enabled = self.config.openapi_docs
        self.redirect_trailing_slash = self.config.redirect_trailing_slash

    @property
    def mux(self) -> ServeMux:
        return self._mux

    @property
    def registry(self) -> SharedRegistry:
        return self._registry

    # -- Tree --

    def group(self, sub_path: str, fn: Callable[[Router], Any] | None = None) -> Router:
        """Create a child node under ``base_path + sub_path``.

        The child starts with a copy of this node's middleware: later
        ``use()`` calls here do not reach it. *fn*, if given, is called
        with the child before this returns.
        """
        child = object.__new__(type(self))
        child.config = self.config
        child._mux = self._mux
        child._registry = self._registry
        child._synthesizer = self._synthesizer
        child.base_path = self.base_path + sub_path
        child.middlewares = list(self.middlewares)
        child.parent = self
        child.docs_enabled = self.docs_enabled
        child.redirect_trailing_slash = self.redirect_trailing_slash

        if fn is not None:
            fn(child)
        return child

    def use(self, *middleware: Middleware) -> None:
        """Append middleware to this node. Earlier middleware runs outermost."""
        self.middlewares.extend(middleware)

    def use_openapi_docs(self, enabled: bool) -> None:
        self.docs_enabled = enabled

    def set_redirect_trailing_slash(self, enabled: bool) -> None:
        self.redirect_trailing_slash = enabled

    # -- Registration --

    def full_pattern(self, pattern: str) -> str:
        """The pattern as registered: base path prefixed, leading ``/`` ensured."""
        pattern = self.base_path + pattern
        if not pattern:
            return "/"
        if not pattern.startswith("/"):
            return "/" + pattern
        return pattern

    def register(self, method: str, pattern: str, handler: Handler, docs: Docs | None = None) -> MuxRoute:
        """Bind *handler* to *method* on *pattern*, relative to this node.

        The node's middleware, as it is now, is composed around the
        handler. Raises ``RouteConflict`` for a duplicate binding,
        ``InvalidPattern`` for a malformed pattern, and
        ``ConfigurationError`` for an ``OPTIONS`` route that discovery
        already installed.
        """
        method = method.upper()
        pattern = self.full_pattern(pattern)
        endpoint = compose(self.middlewares, make_endpoint(handler))

        try:
            with self._registry.lock.write():
                route = self._mux.handle(method, pattern, endpoint)
                self._registry.record(method, pattern)
        except RouteConflict as exc:
            if (
                method == "OPTIONS"
                and self._registry.options_synthesized
                and not self._registry.is_recorded(method, pattern)
            ):
                msg = (
                    f"OPTIONS {pattern!r} was already installed by OpenAPI discovery on the "
                    f"first request. Register OPTIONS routes before serving."
                )
                raise ConfigurationError(msg) from exc
            raise

        if docs is not None and self.docs_enabled:
            self._synthesizer.register_operation(method, pattern, docs)

        logger.debug("registered %s %s -> %s", method, pattern, getattr(handler, "__qualname__", handler))
        return route

    def route(
        self,
        pattern: str,
        *,
        methods: Iterable[str] | None = None,
        docs: Docs | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of ``register`` for one or more methods (default GET)."""

        def decorator(func: Handler) -> Handler:
            for method in methods or ("GET",):
                self.register(method, pattern, func, docs)
            return func

        return decorator

    def get(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("GET",), docs=docs)

    def head(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("HEAD",), docs=docs)

    def post(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("POST",), docs=docs)

    def put(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("PUT",), docs=docs)

    def patch(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("PATCH",), docs=docs)

    def delete(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("DELETE",), docs=docs)

    def options(self, pattern: str, *, docs: Docs | None = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("OPTIONS",), docs=docs)

    # -- Status overrides --

    def set_status_handler(self, code: int, handler: StatusHandler | None) -> None:
        """Replace the multiplexer's response for *code*. ``None`` removes it."""
        self._registry.set_status_handler(code, handler)

    def status_handler(self, code: int) -> Callable[[StatusHandler], StatusHandler]:
        """Decorator form of ``set_status_handler``."""

        def decorator(func: StatusHandler) -> StatusHandler:
            self.set_status_handler(code, func)
            return func

        return decorator

    def not_found(self, handler: StatusHandler) -> StatusHandler:
        return self.status_handler(404)(handler)

    def method_not_allowed(self, handler: StatusHandler) -> StatusHandler:
        return self.status_handler(405)(handler)

    def internal_error(self, handler: StatusHandler) -> StatusHandler:
        return self.status_handler(500)(handler)

    # -- Documentation --

    def document(self, method: str, pattern: str, docs: Docs) -> None:
        """Attach (or replace) the documentation of a registered route."""
        method = method.upper()
        pattern = self.full_pattern(pattern)
        if not self._registry.is_recorded(method, pattern):
            msg = f"No route registered for {method} {pattern!r}."
            raise ConfigurationError(msg)
        self._synthesizer.register_operation(method, pattern, docs)

    def add_server(self, url: str, description: str = "") -> None:
        self._registry.add_server(url, description)

    def openapi(self) -> dict[str, Any]:
        """The OpenAPI document as JSON-ready data."""
        return self._synthesizer.snapshot()

    def serve_docs(self, pattern: str = "/openapi.json") -> MuxRoute:
        """Serve the OpenAPI document as JSON at *pattern*."""

        def openapi_document() -> dict[str, Any]:
            return self.openapi()

        return self.register("GET", pattern, openapi_document)

    # -- Serving --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        if self.docs_enabled:
            self._synthesizer.synthesize_options_handlers(self._mux)

        writer = ASGIResponseWriter(send)
        await self.serve(writer, Request.from_asgi(scope, receive))
        await writer.finish()

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge the ASGI lifespan protocol.

        ``OPTIONS`` synthesis waits for the first HTTP request, so routes
        registered after startup are still covered.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def serve(self, writer: ResponseWriter, request: Request) -> None:
        """Dispatch *request* through the multiplexer, substituting overrides.

        The multiplexer writes through a ``StatusInterceptWriter``. If it
        swallowed the status, the matching override runs against the
        unwrapped *writer*.
        """
        path = request.path
        head = request.method == "HEAD"

        if self.redirect_trailing_slash and path != "/" and path.endswith("/"):
            target = path[:-1]
            if request.query_string:
                target = f"{target}?{request.query_string.decode('latin-1')}"
            logger.debug("redirect %s -> %s", path, target)
            response = negotiate(Redirect(target, status=self.config.redirect_status))
            await write_response(response, writer, head=head)
            return

        interceptor = StatusInterceptWriter(HeaderEraser(writer), self._registry.intercept_map())
        await self._mux.serve(interceptor, request)

        if not interceptor.intercepted or interceptor.status is None:
            return

        status = interceptor.status
        handler = self._registry.status_handler(status)

        # Drop what the swallowed response body needed; middleware headers stay
        inherited_allow = writer.headers.get("allow")
        for name in _SWALLOWED_HEADERS:
            writer.headers.delete(name)

        if status == 405:
            allowed = self._registry.allowed_methods(path)
            allow = ", ".join(allowed) if allowed else inherited_allow
            if allow:
                writer.headers.set("Allow", allow)

        if handler is None:
            # Removed between interception and now
            response = default_error_response(HTTPError(status=status, detail=_phrase(status)))
        else:
            logger.debug("%d %s %s -> override", status, request.method, path)
            try:
                response = await call_status_handler(handler, request, status)
            except Exception:
                logger.exception("status handler for %d failed on %s %s", status, request.method, path)
                response = default_error_response(HTTPError(status=500, detail="Internal Server Error"))

        await write_response(response, writer, head=head)


def _phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""
