"""Handler adaptation: turns user callables into middleware-ready endpoints.

A route handler may take any combination of ``request`` and path
placeholder parameters, be sync or async, and return any value
``negotiate`` understands. ``make_endpoint`` inspects the signature once,
at registration, and returns an ``async (request) -> Response`` callable
that middleware can wrap.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import Handler, StatusHandler
from perch.http.request import Request
from perch.http.response import Response
from perch.server.negotiation import negotiate


def make_endpoint(handler: Handler) -> Callable[[Request], Awaitable[Response]]:
    """Wrap *handler* so it can be called with just a ``Request``."""
    sig = inspect.signature(handler, eval_str=True)
    params = tuple(sig.parameters.items())

    async def endpoint(request: Request) -> Response:
        kwargs = _build_handler_kwargs(params, request)
        result = await invoke(handler, **kwargs)
        return negotiate(result)

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    endpoint.__qualname__ = getattr(handler, "__qualname__", endpoint.__name__)
    return endpoint


def _build_handler_kwargs(
    params: tuple[tuple[str, inspect.Parameter], ...],
    request: Request,
) -> dict[str, Any]:
    """Build kwargs from the handler signature.

    Resolution order:
    1. ``request`` parameter (by name or ``Request`` annotation)
    2. Path placeholders (by name, converted to the annotated type)
    """
    kwargs: dict[str, Any] = {}

    for name, param in params:
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in request.path_params:
            value = request.path_params[name]
            if param.annotation is not inspect.Parameter.empty:
                try:
                    kwargs[name] = param.annotation(value)
                except (ValueError, TypeError):
                    kwargs[name] = value
            else:
                kwargs[name] = value

    return kwargs


async def call_status_handler(
    handler: StatusHandler,
    request: Request,
    status: int,
) -> Response:
    """Invoke a status override handler and pin the response status.

    Override handlers may accept zero args or one (the request), sync or
    async. A response left at 200 takes the intercepted *status*.
    """
    params = inspect.signature(handler).parameters
    if params:
        result = await invoke(handler, request)
    else:
        result = await invoke(handler)

    response = negotiate(result)
    if response.status == 200:
        return response.with_status(status)
    return response
