"""Request multiplexer with trie-based pattern matching.

``ServeMux`` owns the method + pattern table and nothing else. It
answers every request itself: the matched endpoint's response, or one of
its own fixed plain-text responses for 404, 405 and unhandled errors.
Callers customize those only from the outside, by wrapping the writer
passed to ``serve()``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeAlias

from perch._internal.rwlock import RWLock
from perch.errors import HTTPError, InvalidPattern, MethodNotAllowed, NotFound, RouteConflict
from perch.http.request import Request
from perch.http.response import Response
from perch.http.writer import ResponseWriter
from perch.mux.pattern import PatternKind, parse_pattern
from perch.server.sender import write_response

logger = logging.getLogger("perch.mux")

Endpoint: TypeAlias = Callable[[Request], Awaitable[Response]]

METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "CONNECT", "TRACE")


@dataclass(frozen=True, slots=True)
class MuxRoute:
    """One method bound to one pattern."""

    method: str
    pattern: str
    endpoint: Endpoint
    param_names: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MuxMatch:
    """Result of a successful match."""

    route: MuxRoute
    path_params: dict[str, str]


@dataclass(slots=True)
class _TrieNode:
    """A node in the pattern trie.

    Each terminal table maps method -> route for one pattern kind ending
    at this node.
    """

    children: dict[str, _TrieNode] = field(default_factory=dict)
    param_child: _TrieNode | None = None
    routes: dict[str, MuxRoute] = field(default_factory=dict)
    slash_routes: dict[str, MuxRoute] = field(default_factory=dict)
    subtree_routes: dict[str, MuxRoute] = field(default_factory=dict)
    rest_routes: dict[str, MuxRoute] = field(default_factory=dict)

    def table(self, kind: PatternKind) -> dict[str, MuxRoute]:
        match kind:
            case PatternKind.LITERAL:
                return self.routes
            case PatternKind.EXACT_SLASH:
                return self.slash_routes
            case PatternKind.SUBTREE:
                return self.subtree_routes
            case PatternKind.REST:
                return self.rest_routes


def default_error_response(exc: HTTPError) -> Response:
    """The multiplexer's fixed plain-text response for *exc*."""
    response = Response(body=f"{exc.detail or exc.status}\n", status=exc.status).with_header(
        "X-Content-Type-Options", "nosniff"
    )
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


class ServeMux:
    """Method + pattern multiplexer.

    Usage::

        mux = ServeMux()
        mux.handle("GET", "/users/{id}", endpoint)
        match = mux.match("GET", "/users/42")
        await mux.serve(writer, request)

    Registration may interleave with serving; the table is guarded by a
    readers-writer lock. More specific patterns win: literal segments
    before placeholders, placeholders before rest placeholders, and those
    before subtree patterns.
    """

    __slots__ = ("_lock", "_root")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._lock = RWLock()

    def handle(self, method: str, pattern: str, endpoint: Endpoint) -> MuxRoute:
        """Bind *endpoint* to *method* + *pattern*.

        Raises ``RouteConflict`` if the pair is already bound and
        ``InvalidPattern`` if the pattern cannot be parsed.
        """
        method = method.upper()
        if method not in METHODS:
            raise InvalidPattern(pattern, f"unknown method {method!r}")

        parsed = parse_pattern(pattern)
        route = MuxRoute(
            method=method,
            pattern=pattern,
            endpoint=endpoint,
            param_names=parsed.param_names,
        )

        with self._lock.write():
            node = self._root
            for seg in parsed.segments:
                if seg.is_param:
                    if node.param_child is None:
                        node.param_child = _TrieNode()
                    node = node.param_child
                else:
                    node = node.children.setdefault(seg.value, _TrieNode())

            table = node.table(parsed.kind)
            if method in table:
                raise RouteConflict(method, pattern)
            table[method] = route

        return route

    @property
    def routes(self) -> list[MuxRoute]:
        """Every bound route, in trie order."""
        result: list[MuxRoute] = []
        with self._lock.read():
            self._collect_routes(self._root, result)
        return result

    def _collect_routes(self, node: _TrieNode, result: list[MuxRoute]) -> None:
        for kind in PatternKind:
            result.extend(node.table(kind).values())
        for child in node.children.values():
            self._collect_routes(child, result)
        if node.param_child is not None:
            self._collect_routes(node.param_child, result)

    def match(self, method: str, path: str) -> MuxMatch:
        """Match a request method and path.

        Returns a ``MuxMatch`` on success.
        Raises ``NotFound`` if no pattern matches the path.
        Raises ``MethodNotAllowed`` if patterns match the path but none
        is bound to the method.
        """
        method = method.upper()
        slash = path.endswith("/")
        parts = [p for p in path.split("/") if p]
        allowed: set[str] = set()

        with self._lock.read():
            found = self._search(self._root, parts, 0, [], slash, method, allowed)

        if found is None:
            if allowed:
                raise MethodNotAllowed(tuple(sorted(allowed)))
            raise NotFound()

        route, values = found
        return MuxMatch(route=route, path_params=dict(zip(route.param_names, values, strict=True)))

    def _search(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        values: list[str],
        slash: bool,
        method: str,
        allowed: set[str],
    ) -> tuple[MuxRoute, list[str]] | None:
        """Depth-first search, most specific branch first."""
        if index == len(parts):
            tables = (node.slash_routes, node.subtree_routes) if slash else (node.routes,)
            for table in tables:
                route = _pick(table, method, allowed)
                if route is not None:
                    return route, values
            if slash and node.rest_routes:
                route = _pick(node.rest_routes, method, allowed)
                if route is not None:
                    return route, [*values, ""]
            return None

        part = parts[index]

        # 1. Literal child
        child = node.children.get(part)
        if child is not None:
            result = self._search(child, parts, index + 1, values, slash, method, allowed)
            if result is not None:
                return result

        # 2. Placeholder child
        if node.param_child is not None:
            result = self._search(
                node.param_child, parts, index + 1, [*values, part], slash, method, allowed
            )
            if result is not None:
                return result

        # 3. Rest placeholder consumes everything left
        if node.rest_routes:
            route = _pick(node.rest_routes, method, allowed)
            if route is not None:
                remainder = "/".join(parts[index:]) + ("/" if slash else "")
                return route, [*values, remainder]

        # 4. Subtree pattern rooted here
        if node.subtree_routes:
            route = _pick(node.subtree_routes, method, allowed)
            if route is not None:
                return route, values

        return None

    async def serve(self, writer: ResponseWriter, request: Request) -> None:
        """Dispatch *request* and write the outcome to *writer*."""
        try:
            match = self.match(request.method, request.path)
            response = await match.route.endpoint(request.with_path_params(match.path_params))
        except HTTPError as exc:
            logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
            response = default_error_response(exc)
        except Exception:
            logger.exception("500 %s %s", request.method, request.path)
            response = default_error_response(HTTPError(status=500, detail="Internal Server Error"))

        await write_response(response, writer, head=request.method == "HEAD")


def _pick(table: dict[str, MuxRoute], method: str, allowed: set[str]) -> MuxRoute | None:
    """Return the route for *method*, falling back from HEAD to GET.

    Methods of a table that does not serve *method* are collected into
    *allowed* for the 405 ``Allow`` header.
    """
    if not table:
        return None
    if method in table:
        return table[method]
    if method == "HEAD" and "GET" in table:
        return table["GET"]
    allowed.update(table)
    if "GET" in table:
        allowed.add("HEAD")
    return None
