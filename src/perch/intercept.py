"""Response-writer decorators that let the router replace status responses.

The multiplexer always writes its own response: a matched handler's, or
its fixed 404 / 405 / 500 text. To substitute a custom handler for a
status without touching the multiplexer, the router wraps the real
writer twice before delegating::

    StatusInterceptWriter(HeaderEraser(ASGIResponseWriter(send)))

``StatusInterceptWriter`` watches ``write_header``. When a status has an
override and the response did not opt out, it swallows the status line
and every body byte after it. The router then calls the override with
the real writer.

``HeaderEraser`` sits underneath and deletes the ``do-not-intercept``
flag header just before the status line is flushed, so the flag never
reaches a client. It must stay the innermost decorator.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping

from perch.http.headers import MutableHeaders
from perch.http.writer import ResponseWriter

DO_NOT_INTERCEPT = "do-not-intercept"
"""Set this response header (any value) to pass a status through untouched.

Meant for components that must emit a genuine status even when an
override is registered for it, e.g. a file server's own 404.
"""


class HeaderEraser:
    """Deletes reserved headers right before the status line leaves."""

    __slots__ = ("_excluded", "_inner", "_flushed")

    def __init__(self, inner: ResponseWriter, excluded: Iterable[str] = (DO_NOT_INTERCEPT,)) -> None:
        self._inner = inner
        self._excluded = tuple(excluded)
        self._flushed = False

    @property
    def headers(self) -> MutableHeaders:
        return self._inner.headers

    def _erase(self) -> None:
        for name in self._excluded:
            self._inner.headers.delete(name)

    async def write_header(self, status: int) -> None:
        self._erase()
        self._flushed = True
        await self._inner.write_header(status)

    async def write(self, data: bytes) -> int:
        # A write before any status flushes an implicit 200 downstream
        if not self._flushed:
            self._erase()
            self._flushed = True
        return await self._inner.write(data)


class StatusInterceptWriter:
    """Swallows responses whose status has a registered override.

    States: idle -> forwarded (status passed on) or idle -> intercepted
    (status swallowed). Both are terminal for the request.
    """

    __slots__ = ("_inner", "_intercept", "intercepted", "status")

    def __init__(self, inner: ResponseWriter, intercept: Mapping[int, Callable[[], bool]]) -> None:
        self._inner = inner
        self._intercept = intercept
        self.intercepted = False
        self.status: int | None = None

    @property
    def headers(self) -> MutableHeaders:
        return self._inner.headers

    @property
    def inner(self) -> ResponseWriter:
        return self._inner

    async def write_header(self, status: int) -> None:
        if self.intercepted:
            return

        self.status = status

        predicate = self._intercept.get(status)
        if DO_NOT_INTERCEPT not in self.headers and predicate is not None and predicate():
            self.intercepted = True
            return

        await self._inner.write_header(status)

    async def write(self, data: bytes) -> int:
        if self.status is None:
            await self.write_header(200)
        if self.intercepted:
            return len(data)
        return await self._inner.write(data)
