"""Root-owned shared state for a router tree.

One ``SharedRegistry`` is created by the root ``Router`` and handed by
reference to every group created from it. It holds what the multiplexer
cannot tell us: which methods each pattern was registered with, the
status override table, the OpenAPI operations and schema components,
and the one-shot flag for ``OPTIONS`` synthesis.

Locking: mutations take ``lock.write()``, lookups take ``lock.read()``.
Methods documented as "caller holds the write lock" do no locking of
their own so a caller can combine them with multiplexer registration in
one exclusive section.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import partial

from perch._internal.rwlock import RWLock
from perch._internal.types import StatusHandler
from perch.config import RouterConfig
from perch.mux.pattern import PatternKind, compile_pattern, parse_pattern, strip_exact_marker
from perch.openapi.models import Info, Operation, Schema, Server

# Order methods are listed in Allow headers and OPTIONS responses
CANONICAL_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


def _method_rank(method: str) -> tuple[int, str]:
    try:
        return (CANONICAL_METHODS.index(method), method)
    except ValueError:
        return (len(CANONICAL_METHODS), method)


@dataclass(slots=True)
class PathDescriptor:
    """Everything known about one routing pattern.

    ``operations`` maps each registered method to its documentation, or
    to ``None`` when the route was registered without any.
    """

    pattern: str
    path: str
    operations: dict[str, Operation | None] = field(default_factory=dict)
    matcher: re.Pattern[str] | None = None
    specificity: tuple[int, int, int] = (0, 0, 0)

    @property
    def methods(self) -> tuple[str, ...]:
        """Registered methods, in canonical order."""
        return tuple(sorted(self.operations, key=_method_rank))


def _specificity(pattern: str) -> tuple[int, int, int]:
    parsed = parse_pattern(pattern)
    literals = sum(1 for seg in parsed.segments if not seg.is_param)
    anchored = 0 if parsed.kind in (PatternKind.SUBTREE, PatternKind.REST) else 1
    return (anchored, literals, len(parsed.segments))


class SharedRegistry:
    """Lock-guarded store shared by every node of one router tree."""

    __slots__ = (
        "info",
        "lock",
        "openapi_version",
        "options_synthesized",
        "paths",
        "schemas",
        "servers",
        "status_handlers",
    )

    def __init__(self, config: RouterConfig | None = None) -> None:
        config = config or RouterConfig()
        self.lock = RWLock()
        self.paths: dict[str, PathDescriptor] = {}
        self.status_handlers: dict[int, StatusHandler] = {}
        self.schemas: dict[str, Schema] = {}
        self.options_synthesized: bool = False
        self.info = Info(title=config.title, version=config.version, description=config.description)
        self.openapi_version = config.openapi_version
        self.servers: list[Server] = [Server(url, description) for url, description in config.servers]

    # -- Route bookkeeping --

    def descriptor(self, pattern: str) -> PathDescriptor:
        """Return the descriptor for *pattern*, creating it on first use.

        Caller holds the write lock.
        """
        desc = self.paths.get(pattern)
        if desc is None:
            desc = PathDescriptor(
                pattern=pattern,
                path=strip_exact_marker(pattern),
                matcher=compile_pattern(pattern),
                specificity=_specificity(pattern),
            )
            self.paths[pattern] = desc
        return desc

    def record(self, method: str, pattern: str) -> PathDescriptor:
        """Record that *method* is bound on *pattern*.

        Caller holds the write lock. Existing documentation for the pair
        is left untouched.
        """
        desc = self.descriptor(pattern)
        desc.operations.setdefault(method, None)
        return desc

    def is_recorded(self, method: str, pattern: str) -> bool:
        with self.lock.read():
            desc = self.paths.get(pattern)
            return desc is not None and method in desc.operations

    def allowed_methods(self, path: str) -> tuple[str, ...]:
        """Methods registered for the pattern serving *path*.

        An exact pattern key wins. Otherwise the most specific pattern
        whose expression matches the path is used. Empty when no
        registered pattern matches.
        """
        with self.lock.read():
            desc = self.paths.get(path)
            if desc is None:
                candidates = [d for d in self.paths.values() if d.matcher is not None and d.matcher.match(path)]
                if not candidates:
                    return ()
                desc = max(candidates, key=lambda d: d.specificity)
            return desc.methods

    # -- Status overrides --

    def set_status_handler(self, code: int, handler: StatusHandler | None) -> None:
        """Install (or with ``None``, remove) the override for *code*."""
        with self.lock.write():
            if handler is None:
                self.status_handlers.pop(code, None)
            else:
                self.status_handlers[code] = handler

    def status_handler(self, code: int) -> StatusHandler | None:
        with self.lock.read():
            return self.status_handlers.get(code)

    def has_status_handler(self, code: int) -> bool:
        return self.status_handler(code) is not None

    def intercept_map(self) -> dict[int, partial[bool]]:
        """Per-request predicates: intercept a status only while it has a handler."""
        with self.lock.read():
            codes = tuple(self.status_handlers)
        return {code: partial(self.has_status_handler, code) for code in codes}

    # -- Document info --

    def add_server(self, url: str, description: str = "") -> None:
        with self.lock.write():
            self.servers.append(Server(url, description))
