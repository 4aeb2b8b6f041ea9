"""perch: grouped routing, status overrides and OpenAPI for ASGI.

Sits on a request multiplexer it never modifies: route groups with
inherited middleware, custom handlers in place of the multiplexer's
built-in 404 / 405 / 500 responses, and an OpenAPI document synthesized
from per-route declarations.

Basic usage::

    from perch import Router

    router = Router()

    @router.get("/{$}")
    def index():
        return "Welcome"

    @router.method_not_allowed
    def not_allowed():
        return "try another method"

    # any ASGI server: uvicorn app:router
"""

# Declare free-threading support (PEP 703)
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "DocIn",
    "DocOut",
    "Docs",
    "HTTPError",
    "InvalidPattern",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "Redirect",
    "Request",
    "Response",
    "RouteConflict",
    "Router",
    "RouterConfig",
    "ServeMux",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from perch.router import Router

        return Router

    if name == "RouterConfig":
        from perch.config import RouterConfig

        return RouterConfig

    if name == "ServeMux":
        from perch.mux import ServeMux

        return ServeMux

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("DocIn", "DocOut", "Docs"):
        from perch.openapi import docs as _docs

        return getattr(_docs, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "InvalidPattern",
        "MethodNotAllowed",
        "NotFound",
        "PerchError",
        "RouteConflict",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
