"""CORS middleware.

Handles preflight requests and adds the appropriate headers to actual
requests. Requests from origins outside the allow list are refused with
403 before reaching the handler.
"""

from dataclasses import dataclass

from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    All fields have secure defaults (nothing is allowed).
    Override what you need::

        CORSConfig(
            allow_origins=("https://example.com", "*.example.org"),
            allow_methods=("GET", "POST"),
        )

    ``"*"`` allows every origin. ``"*.example.org"`` allows any origin
    ending in ``.example.org``. Empty ``allow_methods`` / ``allow_headers``
    echo what the preflight asked for.
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ()
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 0


class CORSMiddleware:
    """Cross-Origin Resource Sharing middleware.

    Handles:
    - Preflight ``OPTIONS`` requests (returns 204 with CORS headers)
    - Actual requests (adds CORS headers to the response)
    - Disallowed origins (returns 403, the handler never runs)

    Usage::

        router.use(CORSMiddleware(CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST", "PUT"),
            allow_headers=("Content-Type", "Authorization"),
        )))
    """

    __slots__ = ("_allow_all", "_exact", "_suffixes", "config")

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()
        self._allow_all = "*" in self.config.allow_origins
        self._exact = frozenset(o for o in self.config.allow_origins if not o.startswith("*"))
        # "*.example.com" -> ".example.com"
        self._suffixes = tuple(o[1:] for o in self.config.allow_origins if o.startswith("*."))

    def allowed_origin(self, origin: str) -> str | None:
        """The ``Access-Control-Allow-Origin`` value for *origin*, or None if refused."""
        if self._allow_all:
            return "*"
        if origin in self._exact or origin.endswith(self._suffixes):
            return origin
        return None

    def _add_cors_headers(self, response: Response, allowed: str) -> Response:
        cfg = self.config
        response = response.with_header("Access-Control-Allow-Origin", allowed)
        if allowed != "*":
            response = response.with_header("Vary", "Origin")
        if cfg.allow_credentials:
            response = response.with_header("Access-Control-Allow-Credentials", "true")
        return response

    def _preflight_response(self, request: Request, allowed: str) -> Response:
        cfg = self.config
        response = self._add_cors_headers(Response(body="", status=204), allowed)

        methods = ", ".join(cfg.allow_methods) or request.headers.get("access-control-request-method")
        if methods:
            response = response.with_header("Access-Control-Allow-Methods", methods)

        headers = ", ".join(cfg.allow_headers) or request.headers.get("access-control-request-headers")
        if headers:
            response = response.with_header("Access-Control-Allow-Headers", headers)

        if cfg.max_age > 0:
            response = response.with_header("Access-Control-Max-Age", str(cfg.max_age))

        return response

    async def __call__(self, request: Request, next: Next) -> Response:
        """Process the request with CORS handling."""
        origin = request.headers.get("origin")

        # No Origin header: not a CORS request
        if origin is None:
            return await next(request)

        allowed = self.allowed_origin(origin)
        if allowed is None:
            return Response(body="", status=403)

        if request.method == "OPTIONS":
            return self._preflight_response(request, allowed)

        response = await next(request)
        response = self._add_cors_headers(response, allowed)
        if self.config.expose_headers:
            response = response.with_header(
                "Access-Control-Expose-Headers",
                ", ".join(self.config.expose_headers),
            )
        return response
