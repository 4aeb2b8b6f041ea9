"""Router configuration.

RouterConfig is a frozen dataclass, immutable after creation, no
process-wide mutable defaults.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(title="Users API", version="2.1.0", openapi_docs=True)
    """

    # Document info
    title: str = "perch"
    version: str = "0.1.0"
    description: str = ""

    # OpenAPI
    openapi_docs: bool = False
    openapi_version: str = "3.0.1"
    servers: tuple[tuple[str, str], ...] = ()  # (url, description)

    # Trailing slash: "/users/" redirects to "/users" when enabled
    redirect_trailing_slash: bool = False
    redirect_status: int = 307
