"""Tests for perch.router: route trees, middleware order and status overrides."""

import pytest

from perch.config import RouterConfig
from perch.errors import ConfigurationError, InvalidPattern, RouteConflict
from perch.http.request import Request
from perch.http.response import Response
from perch.intercept import DO_NOT_INTERCEPT
from perch.middleware import CORSConfig, CORSMiddleware
from perch.middleware.protocol import Next
from perch.router import Router
from perch.testing import TestClient


def _header_names(response: Response) -> set[str]:
    return {name for name, _ in response.headers}


class TestPatterns:
    def test_base_path_concatenation(self) -> None:
        router = Router()
        api = router.group("/api")
        v1 = api.group("/v1")
        users = v1.group("/users")
        assert users.full_pattern("/{id}") == "/api/v1/users/{id}"

    @pytest.mark.parametrize("depth", [1, 2, 5])
    def test_any_depth(self, depth: int) -> None:
        node = Router()
        for i in range(depth):
            node = node.group(f"/l{i}")
        route = node.register("GET", "/leaf", lambda: "ok")
        assert route.pattern == "".join(f"/l{i}" for i in range(depth)) + "/leaf"

    def test_empty_pattern_is_root(self) -> None:
        router = Router()
        assert router.full_pattern("") == "/"

    def test_leading_slash_added(self) -> None:
        router = Router()
        assert router.full_pattern("users") == "/users"

    def test_group_with_empty_leaf(self) -> None:
        router = Router()
        assert router.group("/users").full_pattern("") == "/users"

    def test_group_runs_fn_with_child(self) -> None:
        router = Router()
        seen: list[Router] = []
        child = router.group("/api", seen.append)
        assert seen == [child]
        assert child.parent is router
        assert child.base_path == "/api"

    def test_group_shares_registry_and_mux(self) -> None:
        router = Router()
        child = router.group("/api")
        child.register("GET", "/ping", lambda: "pong")
        assert router.registry is child.registry
        assert router.mux.match("GET", "/api/ping").route.pattern == "/api/ping"
        assert "/api/ping" in router.registry.paths


class TestRegistrationErrors:
    def test_duplicate_across_groups(self) -> None:
        router = Router()
        router.register("GET", "/api/users", lambda: "a")
        with pytest.raises(RouteConflict):
            router.group("/api").register("GET", "/users", lambda: "b")

    def test_malformed_pattern(self) -> None:
        with pytest.raises(InvalidPattern):
            Router().register("GET", "/a//b", lambda: "x")

    def test_document_unknown_route(self) -> None:
        from perch.openapi.docs import Docs

        with pytest.raises(ConfigurationError):
            Router().document("GET", "/nothing", Docs(summary="x"))


class TestHandlers:
    async def test_scenario_exact_root(self) -> None:
        router = Router()

        @router.get("/{$}")
        def index():
            return "Welcome"

        client = TestClient(router)
        response = await client.get("/")
        assert response.status == 200
        assert response.text == "Welcome"

    async def test_scenario_placeholder(self) -> None:
        router = Router()
        seen: dict[str, object] = {}

        @router.get("/users/{id}")
        def get_user(id: str, request: Request):
            seen["id"] = id
            seen["path_value"] = request.path_value("id")
            return "user"

        response = await TestClient(router).get("/users/123")
        assert response.status == 200
        assert seen == {"id": "123", "path_value": "123"}

    async def test_annotation_conversion(self) -> None:
        router = Router()

        @router.get("/items/{n}")
        def item(n: int):
            return {"double": n * 2}

        response = await TestClient(router).get("/items/21")
        assert response.text == '{"double": 42}'
        assert response.content_type.startswith("application/json")

    async def test_route_multiple_methods(self) -> None:
        router = Router()

        @router.route("/things", methods=["GET", "POST"])
        async def things(request: Request):
            return request.method

        client = TestClient(router)
        assert (await client.get("/things")).text == "GET"
        assert (await client.post("/things")).text == "POST"

    async def test_tuple_status(self) -> None:
        router = Router()

        @router.post("/things")
        def create():
            return ("created", 201)

        response = await TestClient(router).post("/things")
        assert response.status == 201

    async def test_request_body(self) -> None:
        router = Router()

        @router.put("/echo")
        async def echo(request: Request):
            return await request.body()

        response = await TestClient(router).put("/echo", body=b"payload")
        assert response.body == b"payload"


class TestMiddlewareOrder:
    async def test_earlier_is_outer(self) -> None:
        calls: list[str] = []

        def tracer(name: str):
            async def mw(request: Request, next: Next) -> Response:
                calls.append(f"{name}>")
                response = await next(request)
                calls.append(f"<{name}")
                return response

            return mw

        router = Router()
        router.use(tracer("a"), tracer("b"))

        @router.get("/x")
        def handler():
            calls.append("handler")
            return "ok"

        await TestClient(router).get("/x")
        assert calls == ["a>", "b>", "handler", "<b", "<a"]

    async def test_ancestor_wraps_descendant(self) -> None:
        calls: list[str] = []

        def tracer(name: str):
            async def mw(request: Request, next: Next) -> Response:
                calls.append(name)
                return await next(request)

            return mw

        router = Router()
        router.use(tracer("root"))

        def api(child: Router) -> None:
            child.use(tracer("child"))
            child.register("GET", "/x", lambda: "ok")

        router.group("/api", api)

        await TestClient(router).get("/api/x")
        assert calls == ["root", "child"]

    async def test_snapshot_at_group_creation(self) -> None:
        calls: list[str] = []

        def tracer(name: str):
            async def mw(request: Request, next: Next) -> Response:
                calls.append(name)
                return await next(request)

            return mw

        router = Router()
        router.use(tracer("early"))
        child = router.group("/api")
        router.use(tracer("late"))
        child.register("GET", "/x", lambda: "ok")
        router.register("GET", "/y", lambda: "ok")

        client = TestClient(router)
        await client.get("/api/x")
        assert calls == ["early"]

        calls.clear()
        await client.get("/y")
        assert calls == ["early", "late"]

    async def test_composition_fixed_at_registration(self) -> None:
        calls: list[str] = []

        async def mw(request: Request, next: Next) -> Response:
            calls.append("mw")
            return await next(request)

        router = Router()
        router.register("GET", "/before", lambda: "ok")
        router.use(mw)

        await TestClient(router).get("/before")
        assert calls == []

    async def test_middleware_can_modify_response(self) -> None:
        async def stamp(request: Request, next: Next) -> Response:
            response = await next(request)
            return response.with_header("X-Stamp", "1")

        router = Router()
        router.use(stamp)
        router.register("GET", "/x", lambda: "ok")

        response = await TestClient(router).get("/x")
        assert ("x-stamp", "1") in response.headers


class TestStatusOverrides:
    async def test_scenario_method_not_allowed(self) -> None:
        router = Router()
        router.register("GET", "/users", lambda: "users")

        @router.method_not_allowed
        def not_allowed():
            return "custom 405"

        response = await TestClient(router).delete("/users")
        assert response.status == 405
        assert response.text == "custom 405"
        assert response.header("allow") == "GET"

    async def test_allow_lists_registered_methods(self) -> None:
        router = Router()
        for method in ("PUT", "GET", "DELETE"):
            router.register(method, "/users/{id}", lambda: "ok")
        router.method_not_allowed(lambda: "nope")

        response = await TestClient(router).post("/users/5")
        assert response.status == 405
        assert response.header("allow") == "GET, PUT, DELETE"

    async def test_scenario_not_found(self) -> None:
        router = Router()
        router.register("GET", "/users", lambda: "users")

        @router.not_found
        def missing(request: Request):
            return f"nothing at {request.path}"

        response = await TestClient(router).get("/nowhere")
        assert response.status == 404
        assert response.text == "nothing at /nowhere"
        assert "404 page not found" not in response.text

    async def test_no_override_passes_through(self) -> None:
        router = Router()
        router.register("GET", "/users", lambda: "users")

        client = TestClient(router)
        missing = await client.get("/nowhere")
        assert missing.status == 404
        assert missing.text == "404 page not found\n"

        not_allowed = await client.delete("/users")
        assert not_allowed.status == 405
        assert not_allowed.text == "Method Not Allowed\n"
        assert not_allowed.header("allow") == "GET, HEAD"

    async def test_override_for_other_status_leaves_404_alone(self) -> None:
        router = Router()
        router.method_not_allowed(lambda: "custom 405")

        response = await TestClient(router).get("/nowhere")
        assert response.status == 404
        assert response.text == "404 page not found\n"

    async def test_internal_error_override(self) -> None:
        router = Router()

        @router.get("/boom")
        def boom():
            raise RuntimeError("boom")

        @router.internal_error
        async def oops():
            return "we are on it"

        response = await TestClient(router).get("/boom")
        assert response.status == 500
        assert response.text == "we are on it"

    async def test_override_can_set_own_status(self) -> None:
        router = Router()
        router.not_found(lambda: Response("gone", status=410))

        response = await TestClient(router).get("/nowhere")
        assert response.status == 410

    async def test_handler_404_is_intercepted(self) -> None:
        router = Router()
        router.register("GET", "/users/{id}", lambda id: ("no such user", 404))
        router.not_found(lambda: "custom")

        response = await TestClient(router).get("/users/1")
        assert response.status == 404
        assert response.text == "custom"

    async def test_escape_header_bypasses_override(self) -> None:
        router = Router()

        @router.get("/files/{name}")
        def files(name: str):
            return Response("file not found", status=404).with_header(DO_NOT_INTERCEPT, "1")

        router.not_found(lambda: "custom")

        response = await TestClient(router).get("/files/x.txt")
        assert response.status == 404
        assert response.text == "file not found"
        assert DO_NOT_INTERCEPT not in _header_names(response)

    async def test_removed_override_stops_intercepting(self) -> None:
        router = Router()
        router.not_found(lambda: "custom")
        router.set_status_handler(404, None)

        response = await TestClient(router).get("/nowhere")
        assert response.text == "404 page not found\n"

    async def test_default_error_headers_do_not_leak(self) -> None:
        router = Router()
        router.not_found(lambda: {"error": "custom"})

        response = await TestClient(router).get("/nowhere")
        assert "x-content-type-options" not in _header_names(response)
        assert response.content_type == "application/json; charset=utf-8"
        assert response.header("content-length") == str(len(response.body))

    async def test_middleware_headers_survive_override(self) -> None:
        router = Router()
        router.use(CORSMiddleware(CORSConfig(allow_origins=("*",))))
        router.register("GET", "/users/{id}", lambda id: ("no such user", 404))
        router.not_found(lambda: "custom missing")

        response = await TestClient(router).get("/users/1", headers={"Origin": "https://a.example"})
        assert response.status == 404
        assert response.text == "custom missing"
        assert response.header("access-control-allow-origin") == "*"

    async def test_handler_headers_survive_override(self) -> None:
        router = Router()
        router.register("GET", "/gone", lambda: Response("old", status=404).with_header("X-Trace", "abc"))
        router.not_found(lambda: "custom")

        response = await TestClient(router).get("/gone")
        assert response.text == "custom"
        assert response.header("x-trace") == "abc"

    async def test_status_handler_decorator(self) -> None:
        router = Router()

        @router.status_handler(404)
        def missing():
            return {"error": "not found"}

        response = await TestClient(router).get("/x")
        assert response.status == 404
        assert response.text == '{"error": "not found"}'

    async def test_overrides_shared_with_groups(self) -> None:
        router = Router()
        api = router.group("/api")
        api.not_found(lambda: "api says no")

        response = await TestClient(router).get("/elsewhere")
        assert response.text == "api says no"


class TestTrailingSlash:
    async def test_redirect(self) -> None:
        router = Router(RouterConfig(redirect_trailing_slash=True))
        router.register("GET", "/users", lambda: "users")

        response = await TestClient(router).get("/users/?page=2")
        assert response.status == 307
        assert response.header("location") == "/users?page=2"

    async def test_root_not_redirected(self) -> None:
        router = Router()
        router.set_redirect_trailing_slash(True)
        router.register("GET", "/{$}", lambda: "home")

        response = await TestClient(router).get("/")
        assert response.status == 200

    async def test_disabled_by_default(self) -> None:
        router = Router()
        router.register("GET", "/users/", lambda: "subtree")

        response = await TestClient(router).get("/users/")
        assert response.status == 200

    async def test_custom_status(self) -> None:
        router = Router(RouterConfig(redirect_trailing_slash=True, redirect_status=301))
        response = await TestClient(router).get("/a/")
        assert response.status == 301


class TestLifespan:
    async def test_startup_and_shutdown(self) -> None:
        router = Router()
        router.register("GET", "/x", lambda: "ok")
        async with TestClient(router) as client:
            response = await client.get("/x")
            assert response.status == 200
