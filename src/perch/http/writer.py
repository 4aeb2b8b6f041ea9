"""Response writers: the minimal capability every layer writes through.

A writer exposes three things: mutable ``headers``, ``write_header(status)``
which flushes the status line with the headers as they are at that moment,
and ``write(data)`` which sends body bytes (flushing a 200 status first if
nothing was flushed yet). Decorators in ``perch.intercept`` wrap a writer
and forward to it; ``ASGIResponseWriter`` is the one at the bottom that
talks to the ASGI server.
"""

from __future__ import annotations

import logging
from typing import Protocol

from perch._internal.asgi import Send
from perch.http.headers import MutableHeaders

logger = logging.getLogger("perch.server")


class ResponseWriter(Protocol):
    """The writer capability shared by the real writer and its decorators."""

    @property
    def headers(self) -> MutableHeaders: ...

    async def write_header(self, status: int) -> None: ...

    async def write(self, data: bytes) -> int: ...


class ASGIResponseWriter:
    """Writes a response as ASGI ``http.response.*`` messages.

    ``write_header`` sends ``http.response.start``; every ``write`` sends a
    body chunk with ``more_body=True``; ``finish`` closes the stream. Only
    the first status line counts, later ones are logged and dropped.
    """

    __slots__ = ("_finished", "_headers", "_send", "status")

    def __init__(self, send: Send) -> None:
        self._send = send
        self._headers = MutableHeaders()
        self._finished = False
        self.status: int | None = None

    @property
    def headers(self) -> MutableHeaders:
        return self._headers

    @property
    def started(self) -> bool:
        return self.status is not None

    async def write_header(self, status: int) -> None:
        if self.status is not None:
            logger.warning("superfluous write_header(%d), status %d already sent", status, self.status)
            return
        self.status = status
        await self._send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": list(self._headers.raw),
            }
        )

    async def write(self, data: bytes) -> int:
        if self.status is None:
            await self.write_header(200)
        if data:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})
        return len(data)

    async def finish(self) -> None:
        """Flush a 200 if nothing was written, then end the body."""
        if self._finished:
            return
        if self.status is None:
            await self.write_header(200)
        self._finished = True
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})
