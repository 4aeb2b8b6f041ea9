"""Immutable HTTP request.

Frozen metadata with async body access. The multiplexer hands each
matched handler a copy carrying the bound path placeholders.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import parse_qs

from perch._internal.asgi import Receive, Scope
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers) is frozen at creation. Path
    placeholders are bound by the multiplexer after matching. The body is
    read asynchronously via ``.body()``, ``.text()``, ``.json()``.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: mutable cache for the body (shared across copies)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def query(self) -> dict[str, list[str]]:
        """Parsed query string, every key mapped to all of its values."""
        return parse_qs(self.query_string.decode("latin-1"), keep_blank_values=True)

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    def path_value(self, name: str, default: str | None = None) -> str | None:
        """Return the value bound to placeholder *name*."""
        return self.path_params.get(name, default)

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy bound to *path_params*. The body cache is shared."""
        return replace(self, path_params=path_params)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body. Cached after the first read."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes, None]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"] or "/",
            headers=Headers(tuple(scope.get("headers", ()))),
            query_string=scope.get("query_string", b""),
            path_params={},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
