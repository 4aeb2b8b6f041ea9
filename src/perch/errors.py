"""perch exception hierarchy.

Shared across the multiplexer, router, schema translation, and middleware
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when router setup is invalid.

    Always surfaces at registration time, never while serving.
    """


class RouteConflict(ConfigurationError):
    """Two handlers registered for the same method and pattern."""

    def __init__(self, method: str, pattern: str) -> None:
        self.method = method
        self.pattern = pattern
        super().__init__(f"A handler is already registered for {method} {pattern!r}.")


class InvalidPattern(ConfigurationError):
    """A route pattern could not be parsed."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")


class UnsupportedDeclaredType(PerchError):
    """A documented type cannot be decomposed into a schema.

    Raised by the schema translator and always caught by the synthesizer,
    which falls back to a string placeholder.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the multiplexer while matching, or by handlers. The
    multiplexer turns it into its plain-text default response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no pattern matched the request path."""

    def __init__(self, detail: str = "404 page not found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: a pattern matched the path but not the method.

    Carries an ``Allow`` header listing the methods bound on that pattern.
    """

    def __init__(self, allowed: tuple[str, ...], detail: str = "Method Not Allowed") -> None:
        super().__init__(
            status=405,
            detail=detail,
            headers=(("Allow", ", ".join(allowed)),),
        )
