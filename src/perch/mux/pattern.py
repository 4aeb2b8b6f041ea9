"""Route pattern parsing.

Pattern syntax::

    /users              literal, matches "/users" only
    /users/             subtree, matches "/users/" and everything below it
    /                   subtree rooted at "/", the catch-all
    /users/{id}         placeholder, binds one non-empty segment
    /files/{path...}    rest placeholder, binds the remainder of the path
    /users/{$}          exact marker, matches "/users/" only, never as a prefix
    /{$}                matches "/" only
"""

import re
from dataclasses import dataclass
from enum import Enum

from perch.errors import InvalidPattern

EXACT_MARKER = "{$}"

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PatternKind(Enum):
    """How the last segment of a pattern anchors the match."""

    LITERAL = "literal"  # "/users"
    EXACT_SLASH = "exact_slash"  # "/users/{$}"
    SUBTREE = "subtree"  # "/users/"
    REST = "rest"  # "/files/{path...}"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Literal:  ``users``  (is_param=False)
    Param:    ``{id}``   (is_param=True, name="id")
    """

    value: str
    is_param: bool = False
    name: str | None = None


@dataclass(frozen=True, slots=True)
class ParsedPattern:
    """A pattern broken into matchable parts."""

    pattern: str
    segments: tuple[PathSegment, ...]
    kind: PatternKind
    rest_name: str | None = None

    @property
    def param_names(self) -> tuple[str, ...]:
        names = tuple(seg.name for seg in self.segments if seg.is_param and seg.name)
        if self.rest_name is not None:
            return (*names, self.rest_name)
        return names


def strip_exact_marker(pattern: str) -> str:
    """Drop the ``{$}`` marker, leaving the public path shown in docs."""
    return pattern.replace(EXACT_MARKER, "")


def parse_pattern(pattern: str) -> ParsedPattern:
    """Parse a route pattern.

    Examples::

        "/users"        -> segments=(users,), kind=LITERAL
        "/users/{id}"   -> segments=(users, {id}), kind=LITERAL
        "/users/"       -> segments=(users,), kind=SUBTREE
        "/{$}"          -> segments=(), kind=EXACT_SLASH

    Raises ``InvalidPattern`` for anything else.
    """
    if not pattern.startswith("/"):
        raise InvalidPattern(pattern, "must start with '/'")

    parts = pattern[1:].split("/")
    segments: list[PathSegment] = []
    seen: set[str] = set()
    kind = PatternKind.LITERAL
    rest_name: str | None = None

    for index, part in enumerate(parts):
        last = index == len(parts) - 1

        if part == "":
            if not last:
                raise InvalidPattern(pattern, "empty segment")
            # Trailing slash (or "/" itself): subtree pattern
            kind = PatternKind.SUBTREE
            break

        if part == EXACT_MARKER:
            if not last:
                raise InvalidPattern(pattern, "'{$}' must be the final segment")
            kind = PatternKind.EXACT_SLASH
            break

        if "{" in part or "}" in part:
            if not (part.startswith("{") and part.endswith("}")):
                raise InvalidPattern(pattern, f"placeholder {part!r} must fill the whole segment")
            inner = part[1:-1]
            is_rest = inner.endswith("...")
            name = inner[:-3] if is_rest else inner
            if not _NAME_RE.match(name):
                raise InvalidPattern(pattern, f"bad placeholder name {name!r}")
            if name in seen:
                raise InvalidPattern(pattern, f"duplicate placeholder {name!r}")
            seen.add(name)
            if is_rest:
                if not last:
                    raise InvalidPattern(pattern, f"'{{{name}...}}' must be the final segment")
                kind = PatternKind.REST
                rest_name = name
                break
            segments.append(PathSegment(value=part, is_param=True, name=name))
            continue

        segments.append(PathSegment(value=part))

    return ParsedPattern(pattern=pattern, segments=tuple(segments), kind=kind, rest_name=rest_name)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a pattern into a regex over request paths.

    Used for lookups that need a yes/no answer for one pattern, such as
    the registry's ``Allow`` computation. The multiplexer itself matches
    through its trie.
    """
    parsed = parse_pattern(pattern)
    regex = "".join("/[^/]+" if seg.is_param else "/" + re.escape(seg.value) for seg in parsed.segments)
    match parsed.kind:
        case PatternKind.LITERAL:
            regex = regex or "/"
        case PatternKind.EXACT_SLASH:
            regex += "/"
        case PatternKind.SUBTREE:
            regex += "/.*"
        case PatternKind.REST:
            regex += "/.*"
    return re.compile(f"^{regex}$")
