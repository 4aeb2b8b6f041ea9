"""Tests for CORS middleware."""

from perch.middleware import CORSConfig, CORSMiddleware
from perch.router import Router
from perch.testing import TestClient


def _make_cors_router(config: CORSConfig | None = None) -> Router:
    """Helper: create a router with CORS middleware and a simple route."""
    router = Router()
    router.use(CORSMiddleware(config))

    @router.get("/api/data")
    def data():
        return {"message": "hello"}

    @router.post("/api/data")
    def create_data():
        return ("created", 201)

    return router


class TestCORSNonCorsRequests:
    """Requests without an Origin header pass through unaffected."""

    async def test_no_origin_header(self) -> None:
        router = _make_cors_router(CORSConfig(allow_origins=("*",)))
        response = await TestClient(router).get("/api/data")
        assert response.status == 200
        header_names = {name for name, _ in response.headers}
        assert "access-control-allow-origin" not in header_names


class TestCORSOrigins:
    def test_allowed_origin_matching(self) -> None:
        mw = CORSMiddleware(CORSConfig(allow_origins=("https://example.com", "*.example.org")))
        assert mw.allowed_origin("https://example.com") == "https://example.com"
        assert mw.allowed_origin("https://api.example.org") == "https://api.example.org"
        assert mw.allowed_origin("https://example.org.evil.com") is None
        assert mw.allowed_origin("https://evil.com") is None

    def test_wildcard_allows_everything(self) -> None:
        mw = CORSMiddleware(CORSConfig(allow_origins=("*",)))
        assert mw.allowed_origin("https://anything.test") == "*"

    def test_default_config_allows_nothing(self) -> None:
        assert CORSMiddleware().allowed_origin("https://example.com") is None


class TestCORSSimpleRequests:
    async def test_allowed_origin_gets_cors_headers(self) -> None:
        router = _make_cors_router(CORSConfig(allow_origins=("https://example.com",)))
        response = await TestClient(router).get("/api/data", headers={"Origin": "https://example.com"})
        assert response.status == 200
        assert response.header("access-control-allow-origin") == "https://example.com"
        assert response.header("vary") == "Origin"

    async def test_wildcard_has_no_vary(self) -> None:
        router = _make_cors_router(CORSConfig(allow_origins=("*",)))
        response = await TestClient(router).get("/api/data", headers={"Origin": "https://x.test"})
        assert response.header("access-control-allow-origin") == "*"
        assert response.header("vary") is None

    async def test_disallowed_origin_refused(self) -> None:
        called = False
        router = Router()
        router.use(CORSMiddleware(CORSConfig(allow_origins=("https://example.com",))))

        @router.get("/api/data")
        def data():
            nonlocal called
            called = True
            return "secret"

        response = await TestClient(router).get("/api/data", headers={"Origin": "https://evil.com"})
        assert response.status == 403
        assert response.body == b""
        assert called is False

    async def test_credentials_and_expose_headers(self) -> None:
        router = _make_cors_router(
            CORSConfig(
                allow_origins=("https://example.com",),
                allow_credentials=True,
                expose_headers=("X-Request-Id", "X-Total"),
            )
        )
        response = await TestClient(router).post("/api/data", headers={"Origin": "https://example.com"})
        assert response.status == 201
        assert response.header("access-control-allow-credentials") == "true"
        assert response.header("access-control-expose-headers") == "X-Request-Id, X-Total"


class TestCORSPreflight:
    async def test_configured_methods_and_headers(self) -> None:
        router = _make_cors_router(
            CORSConfig(
                allow_origins=("https://example.com",),
                allow_methods=("GET", "POST"),
                allow_headers=("Content-Type",),
                max_age=600,
            )
        )
        router.register("OPTIONS", "/api/data", lambda: "never reached")

        response = await TestClient(router).options(
            "/api/data",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "PUT",
            },
        )
        assert response.status == 204
        assert response.body == b""
        assert response.header("access-control-allow-methods") == "GET, POST"
        assert response.header("access-control-allow-headers") == "Content-Type"
        assert response.header("access-control-max-age") == "600"

    async def test_request_values_echoed(self) -> None:
        router = _make_cors_router(CORSConfig(allow_origins=("*.example.com",)))
        router.register("OPTIONS", "/api/data", lambda: "never reached")

        response = await TestClient(router).options(
            "/api/data",
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "DELETE",
                "Access-Control-Request-Headers": "X-Token",
            },
        )
        assert response.status == 204
        assert response.header("access-control-allow-origin") == "https://app.example.com"
        assert response.header("access-control-allow-methods") == "DELETE"
        assert response.header("access-control-allow-headers") == "X-Token"
        assert response.header("access-control-max-age") is None
