"""Tests for perch.app: App lifecycle, registration, and ASGI entry."""

import asyncio
from typing import Any

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.errors import HTTPError, NotFound
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.static import StaticAssets
from perch.testing import TestClient


class TestAppRegistration:
    def test_route_decorator(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "hello"

        assert len(app._pending_routes) == 1
        assert app._pending_routes[0].path == "/"
        assert app._pending_routes[0].methods == frozenset({"GET"})

    def test_route_with_methods(self) -> None:
        app = App()

        @app.route("/users", methods=["get", "POST"])
        def users():
            return "users"

        assert app._pending_routes[0].methods == frozenset({"GET", "POST"})

    def test_error_decorator(self) -> None:
        app = App()

        @app.error(404)
        def not_found():
            return "Not found"

        assert 404 in app._error_handlers

    def test_middleware_registration(self) -> None:
        app = App()
        app.add_middleware(StaticAssets("static"))
        assert len(app._middleware_list) == 1


class TestAppFreeze:
    def test_freeze_compiles_router(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "hello"

        app._ensure_frozen()
        assert app._frozen
        assert app._router is not None
        assert app._pipeline is not None

    def test_cannot_add_routes_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()

        with pytest.raises(RuntimeError, match="Cannot modify"):

            @app.route("/late")
            def late():
                return "late"

    def test_cannot_add_middleware_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()

        with pytest.raises(RuntimeError):
            app.add_middleware(StaticAssets("static"))

    def test_double_freeze_is_safe(self) -> None:
        app = App()
        app._ensure_frozen()
        pipeline = app._pipeline
        app._ensure_frozen()
        assert app._pipeline is pipeline


class TestAppConfig:
    def test_default_config(self) -> None:
        assert App().config == AppConfig()

    def test_custom_config(self) -> None:
        app = App(config=AppConfig(debug=True, port=3000))
        assert app.config.debug is True
        assert app.config.port == 3000


class TestAppE2E:
    async def test_hello_world(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "Hello, World!"

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200
            assert response.text == "Hello, World!"
            assert "text/html" in response.content_type

    async def test_json_response(self) -> None:
        app = App()

        @app.route("/api")
        def api():
            return {"ok": True}

        async with TestClient(app) as client:
            response = await client.get("/api")
            assert response.content_type.startswith("application/json")
            assert response.text == '{"ok": true}'

    async def test_404_default(self) -> None:
        async with TestClient(App()) as client:
            response = await client.get("/nope")
            assert response.status == 404
            assert "/nope" in response.text

    async def test_405_default(self) -> None:
        app = App()

        @app.route("/only-get")
        def only_get():
            return "ok"

        async with TestClient(app) as client:
            response = await client.post("/only-get")
            assert response.status == 405
            assert response.header("allow") == "GET"

    async def test_head_uses_get_route(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "hello"

        async with TestClient(app) as client:
            response = await client.head("/")
            assert response.status == 200
            assert response.text == "hello"

    async def test_async_handler(self) -> None:
        app = App()

        @app.route("/")
        async def index():
            return "async"

        async with TestClient(app) as client:
            assert (await client.get("/")).text == "async"

    async def test_request_injection(self) -> None:
        app = App()

        @app.route("/echo", methods=["POST"])
        async def echo(request: Request):
            return await request.body()

        async with TestClient(app) as client:
            response = await client.post("/echo", body=b"payload")
            assert response.body == b"payload"
            assert response.content_type == "application/octet-stream"

    async def test_tuple_status_override(self) -> None:
        app = App()

        @app.route("/created", methods=["POST"])
        def created():
            return ("made", 201, {"Location": "/thing/1"})

        async with TestClient(app) as client:
            response = await client.post("/created")
            assert response.status == 201
            assert response.header("location") == "/thing/1"


class TestMiddlewarePipeline:
    async def test_middleware_wraps_response(self) -> None:
        app = App()

        async def add_header(request: Request, next):
            response = await next(request)
            return response.with_header("x-middleware", "applied")

        app.add_middleware(add_header)

        @app.route("/")
        def index():
            return "hello"

        async with TestClient(app) as client:
            response = await client.get("/")
            assert ("x-middleware", "applied") in response.headers

    async def test_first_added_is_outermost(self) -> None:
        app = App()
        order: list[str] = []

        def tracer(name: str):
            async def mw(request: Request, next):
                order.append(f"{name}:in")
                response = await next(request)
                order.append(f"{name}:out")
                return response

            return mw

        app.add_middleware(tracer("outer"))
        app.add_middleware(tracer("inner"))

        @app.route("/")
        def index():
            order.append("handler")
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")

        assert order == ["outer:in", "inner:in", "handler", "inner:out", "outer:out"]

    async def test_outer_middleware_sees_static_response(self, tmp_path) -> None:
        (tmp_path / "robots.txt").write_text("User-agent: *\n")
        app = App()

        async def stamp(request: Request, next):
            response = await next(request)
            return response.with_header("x-stamp", "1")

        app.add_middleware(stamp)
        app.add_middleware(StaticAssets("static", directory=tmp_path))

        async with TestClient(app) as client:
            response = await client.get("/robots.txt")
            assert response.status == 200
            assert response.header("x-stamp") == "1"
            assert response.header("access-control-allow-origin") == "*"


class TestErrorHandlers:
    async def test_custom_404_handler_keeps_status(self) -> None:
        app = App()

        @app.error(404)
        def missing(request: Request):
            return f"nothing at {request.path}"

        async with TestClient(app) as client:
            response = await client.get("/gone")
            assert response.status == 404
            assert response.text == "nothing at /gone"

    async def test_handler_by_exception_type(self) -> None:
        app = App()

        @app.route("/")
        def index():
            raise NotFound("custom")

        @app.error(NotFound)
        def not_found(request: Request, exc: HTTPError):
            return Response(f"caught {exc.detail}")

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 404
            assert response.text == "caught custom"

    async def test_unexpected_exception_is_500(self, caplog) -> None:
        app = App()

        @app.route("/")
        def index():
            raise ValueError("boom")

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 500
            assert response.text == "Internal Server Error"
        assert "500 GET /" in caplog.text

    async def test_debug_includes_exception(self) -> None:
        app = App(config=AppConfig(debug=True))

        @app.route("/")
        def index():
            raise ValueError("boom")

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 500
            assert "ValueError: boom" in response.text

    async def test_custom_500_handler(self) -> None:
        app = App()

        @app.route("/")
        def index():
            raise RuntimeError("x")

        @app.error(500)
        def oops():
            return "sorry"

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 500
            assert response.text == "sorry"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


class TestLifespanRegistration:
    def test_on_startup_stores_hook(self) -> None:
        app = App()

        @app.on_startup
        def boot():
            pass

        assert app._startup_hooks == [boot]

    def test_returns_original_function(self) -> None:
        app = App()

        def hook():
            pass

        assert app.on_shutdown(hook) is hook

    def test_cannot_register_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError):
            app.on_startup(lambda: None)


async def _lifespan_exchange(
    app: App,
) -> tuple[list[dict[str, Any]], bool]:
    """Drive the full lifespan protocol and return messages sent by the app.

    Returns (sent_messages, startup_ok).
    """
    sent: list[dict[str, Any]] = []
    receive_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def receive() -> dict[str, Any]:
        return await receive_queue.get()

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    scope: dict[str, Any] = {
        "type": "lifespan",
        "asgi": {"version": "3.0", "spec_version": "2.0"},
    }

    task = asyncio.create_task(app(scope, receive, send))

    await receive_queue.put({"type": "lifespan.startup"})
    await asyncio.sleep(0.01)

    startup_ok = any(m["type"] == "lifespan.startup.complete" for m in sent)

    if startup_ok:
        await receive_queue.put({"type": "lifespan.shutdown"})
    await asyncio.wait_for(task, timeout=2.0)

    return sent, startup_ok


class TestLifespanProtocol:
    """Full ASGI lifespan protocol via raw scope/receive/send."""

    async def test_happy_path(self) -> None:
        app = App()
        calls: list[str] = []

        @app.on_startup
        async def start():
            calls.append("start")

        @app.on_shutdown
        def stop():
            calls.append("stop")

        sent, ok = await _lifespan_exchange(app)

        assert ok
        types = [m["type"] for m in sent]
        assert types == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert calls == ["start", "stop"]

    async def test_startup_failure(self) -> None:
        app = App()

        @app.on_startup
        def explode():
            raise RuntimeError("no database")

        sent, ok = await _lifespan_exchange(app)

        assert not ok
        failed = [m for m in sent if m["type"] == "lifespan.startup.failed"]
        assert failed[0]["message"] == "no database"

    async def test_lifespan_freezes_app(self) -> None:
        app = App()
        await _lifespan_exchange(app)
        assert app._frozen
