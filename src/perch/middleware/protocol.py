"""Middleware protocol, Next type alias and composition.

A middleware is any callable matching::

    async def my_mw(request: Request, next: Next) -> Response: ...

No base class required. The router checks the shape, not the lineage.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, TypeAlias

from perch.http.request import Request
from perch.http.response import Response

# The next handler in the middleware chain
Next: TypeAlias = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    """Protocol for perch middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(request: Request, next: Next) -> Response:
            start = time.monotonic()
            response = await next(request)
            elapsed = time.monotonic() - start
            return response.with_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RateLimiter:
            async def __call__(self, request: Request, next: Next) -> Response:
                ...
    """

    async def __call__(self, request: Request, next: Next) -> Response: ...


def compose(middlewares: Sequence[Middleware], endpoint: Next) -> Next:
    """Wrap *endpoint* in *middlewares*, the first one outermost.

    The first middleware sees the request first and the response last.
    The chain is fixed when this returns; later changes to the sequence
    have no effect on it.
    """
    handler = endpoint
    for mw in reversed(tuple(middlewares)):
        outer = handler

        async def make_next(req: Request, _mw: Middleware = mw, _next: Next = outer) -> Response:
            return await _mw(req, _next)

        handler = make_next
    return handler
