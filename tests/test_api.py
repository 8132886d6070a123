"""
Tests for the HTTP API.

Uses aiohttp's test client against the full application (middlewares,
routes, startup and cleanup) with an in-memory DuckDB database.
"""

from __future__ import annotations

import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer, make_mocked_request
from conftest import FakeConnection, make_settings

from gaspredictor.config.settings import Settings
from gaspredictor.connections.base import BaseConnection
from gaspredictor.core.retry import FailureKind
from gaspredictor.exceptions import (
    CastError,
    DuplicateKeyError,
    ForbiddenError,
    NotFoundError,
    ReadinessTimeoutError,
    RetriesExhaustedError,
    TerminalFailureError,
    ValidationError,
)
from gaspredictor.service import SERVICE_KEY, GasPredictorService, create_app
from gaspredictor.service.api.errors import APIError, ErrorCode
from gaspredictor.service.api.middleware.rate_limit import FixedWindowRateLimiter, client_ip
from gaspredictor.service.api.responses import (
    async_handler,
    build_pagination,
    send_created,
    send_no_content,
    send_not_found,
    send_paginated,
    send_success,
    send_validation_error,
)

# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------


async def _boom(request: web.Request) -> web.Response:
    kind = request.match_info["kind"]
    if kind == "validation":
        raise ValidationError("price must be positive")
    if kind == "cast":
        raise CastError("'abc' is not a number")
    if kind == "forbidden":
        raise ForbiddenError("admins only")
    if kind == "missing":
        raise NotFoundError("Station 'X1' not found")
    if kind == "duplicate":
        raise DuplicateKeyError("station id already exists")
    if kind == "terminal":
        try:
            raise CastError("bad cast")
        except CastError as e:
            raise TerminalFailureError("query failed", kind=FailureKind.CAST, attempts=1) from e
    if kind == "exhausted":
        raise RetriesExhaustedError("db down", kind=FailureKind.TIMEOUT, attempts=4)
    if kind == "not-ready":
        raise ReadinessTimeoutError(30.0, 30.0, last_state="connecting")
    if kind == "api":
        raise APIError(ErrorCode.CONFLICT, "Already predicted", status=409, details={"station": "X1"})
    if kind == "json":
        await request.json()
    raise RuntimeError("kaboom")


def _build_app(settings: Settings | None = None, connection: BaseConnection | None = None) -> web.Application:
    app = create_app(settings or make_settings(), connection)
    app.router.add_get("/boom/{kind}", _boom)
    app.router.add_post("/boom/{kind}", _boom)
    return app


async def _make_client(app: web.Application) -> TestClient:
    server = TestServer(app)
    client = TestClient(server)
    await client.start_server()
    return client


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class TestRootAndHealth:
    @pytest.mark.asyncio
    async def test_root(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/")
            assert resp.status == 200
            body = await resp.json()
            assert body["message"] == "Gas Price Predictor API is running"
            assert body["environment"] == "test"
            assert body["timestamp"].endswith("Z")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_health_with_database(self, memory_connection):
        client = await _make_client(_build_app(connection=memory_connection))
        try:
            for path in ("/health", "/api/v1/health"):
                resp = await client.get(path)
                assert resp.status == 200
                body = await resp.json()
                assert body["success"] is True
                assert body["path"] == path
                assert body["data"]["status"] == "ok"
                assert body["data"]["database"]["healthy"] is True
                assert body["data"]["database"]["backend"] == "duckdb"
                assert body["data"]["uptime_seconds"] >= 0
        finally:
            await client.close()
        # Cleanup closes the database
        assert not memory_connection.is_connected

    @pytest.mark.asyncio
    async def test_health_without_database(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/health")
            body = await resp.json()
            assert resp.status == 200
            assert body["data"]["status"] == "ok"
            assert body["data"]["database"]["configured"] is False
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_health_degraded_when_database_down(self):
        connection = FakeConnection(fail_open=OSError("connection refused"))
        client = await _make_client(_build_app(connection=connection))
        try:
            resp = await client.get("/health")
            body = await resp.json()
            assert resp.status == 200
            assert body["data"]["status"] == "degraded"
            assert body["data"]["database"]["healthy"] is False
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_database_health(self, memory_connection):
        client = await _make_client(_build_app(connection=memory_connection))
        try:
            resp = await client.get("/api/v1/health/db")
            assert resp.status == 200
            body = await resp.json()
            assert body["data"]["healthy"] is True
            assert body["data"]["state"] == "connected"
            assert body["data"]["latency_ms"] >= 0
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_database_health_not_configured(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/api/v1/health/db")
            assert resp.status == 503
            body = await resp.json()
            assert body["success"] is False
            assert body["message"] == "Database not configured"
            assert body["status_code"] == 503
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_database_health_unavailable(self):
        connection = FakeConnection(fail_open=OSError("connection refused"))
        client = await _make_client(_build_app(connection=connection))
        try:
            resp = await client.get("/api/v1/health/db")
            assert resp.status == 503
            body = await resp.json()
            assert body["message"] == "Database unavailable"
            assert body["data"]["healthy"] is False
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_landing_page(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/ui")
            assert resp.status == 200
            assert "text/html" in resp.headers["Content-Type"]
            assert "Smart predictions. Real-time data. Powered by AI." in await resp.text()

            script = await client.get("/ui/static/app.js")
            assert script.status == 200
            assert "/health" in await script.text()
        finally:
            await client.close()


# ---------------------------------------------------------------------------
# Service lifecycle
# ---------------------------------------------------------------------------


class TestServiceLifecycle:
    @pytest.mark.asyncio
    async def test_production_connect_failure_is_fatal(self):
        settings = make_settings("production")
        service = GasPredictorService(settings, FakeConnection(fail_open=OSError("refused")))
        with pytest.raises(RetriesExhaustedError):
            await service.start()
        await service.stop()

    @pytest.mark.asyncio
    async def test_non_production_connect_failure_keeps_running(self):
        service = GasPredictorService(make_settings("development"), FakeConnection(fail_open=OSError("refused")))
        await service.start()
        assert service.monitor is not None and service.monitor.running
        await service.stop()
        assert not service.monitor.running

    def test_connection_built_from_url(self):
        service = GasPredictorService(make_settings(database={"url": "duckdb://"}))
        assert service.connection is not None
        assert service.connection.backend == "duckdb"

    def test_app_exposes_service(self, settings):
        app = create_app(settings)
        assert isinstance(app[SERVICE_KEY], GasPredictorService)
        assert app[SERVICE_KEY].connection is None


# ---------------------------------------------------------------------------
# Error middleware
# ---------------------------------------------------------------------------


class TestErrorMiddleware:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind, status, message, error",
        [
            ("validation", 400, "Validation Error", "price must be positive"),
            ("cast", 400, "'abc' is not a number", "CAST_ERROR"),
            ("forbidden", 403, "admins only", "FORBIDDEN"),
            ("missing", 404, "Station 'X1' not found", "NOT_FOUND"),
            ("duplicate", 409, "Duplicate data error", "station id already exists"),
            ("terminal", 400, "bad cast", "CAST_ERROR"),
            ("api", 409, "Already predicted", "CONFLICT"),
        ],
    )
    async def test_request_errors(self, kind, status, message, error):
        client = await _make_client(_build_app())
        try:
            resp = await client.get(f"/boom/{kind}")
            assert resp.status == status
            body = await resp.json()
            assert body["success"] is False
            assert body["message"] == message
            assert body["error"] == error
            assert body["status_code"] == status
            assert body["path"] == f"/boom/{kind}"
        finally:
            await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["exhausted", "not-ready"])
    async def test_unavailable(self, kind):
        client = await _make_client(_build_app())
        try:
            resp = await client.get(f"/boom/{kind}")
            assert resp.status == 503
            body = await resp.json()
            assert body["error"] == "SERVICE_UNAVAILABLE"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.post("/boom/json", data="{not json", headers={"Content-Type": "application/json"})
            assert resp.status == 400
            body = await resp.json()
            assert body["message"] == "Invalid JSON in request body"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unexpected_error_outside_production(self):
        client = await _make_client(_build_app(make_settings("development")))
        try:
            resp = await client.get("/boom/other")
            assert resp.status == 500
            body = await resp.json()
            assert body["message"] == "kaboom"
            assert "Traceback" in body["error"]
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unexpected_error_in_production(self):
        client = await _make_client(_build_app(make_settings("production")))
        try:
            resp = await client.get("/boom/other")
            assert resp.status == 500
            body = await resp.json()
            assert body["message"] == "Internal server error"
            assert "kaboom" not in json.dumps(body)
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unknown_route(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/api/v1/nothing-here")
            assert resp.status == 404
            body = await resp.json()
            assert body["success"] is False
            assert body["status_code"] == 404
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_request_id(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/")
            assert resp.headers["X-Request-ID"].startswith("req_")

            resp = await client.get("/", headers={"X-Request-ID": "abc-123"})
            assert resp.headers["X-Request-ID"] == "abc-123"
        finally:
            await client.close()


# ---------------------------------------------------------------------------
# Security, CORS, compression, rate limiting
# ---------------------------------------------------------------------------


class TestMiddlewareStack:
    @pytest.mark.asyncio
    async def test_security_headers(self):
        client = await _make_client(_build_app())
        try:
            for path in ("/", "/boom/missing"):
                resp = await client.get(path)
                assert resp.headers["X-Content-Type-Options"] == "nosniff"
                assert resp.headers["X-Frame-Options"] == "SAMEORIGIN"
                assert "default-src 'self'" in resp.headers["Content-Security-Policy"]
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_cors_allowed_origin(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/", headers={"Origin": "http://localhost:3000"})
            assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
            assert resp.headers["Access-Control-Allow-Credentials"] == "true"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_cors_other_origin(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/", headers={"Origin": "http://evil.example"})
            assert "Access-Control-Allow-Origin" not in resp.headers
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_cors_preflight(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.options(
                "/api/v1/health",
                headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
            )
            assert resp.status == 204
            assert "PATCH" in resp.headers["Access-Control-Allow-Methods"]
            assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_compression(self):
        client = await _make_client(_build_app())
        try:
            resp = await client.get("/health", headers={"Accept-Encoding": "gzip"})
            assert resp.headers["Content-Encoding"] == "gzip"
            assert (await resp.json())["success"] is True
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        settings = make_settings(rate_limit={"window_ms": 60000, "max": 2})
        client = await _make_client(_build_app(settings))
        try:
            first = await client.get("/")
            assert first.headers["X-RateLimit-Limit"] == "2"
            assert first.headers["X-RateLimit-Remaining"] == "1"
            assert (await client.get("/")).status == 200

            resp = await client.get("/")
            assert resp.status == 429
            assert int(resp.headers["Retry-After"]) > 0
            body = await resp.json()
            assert body["message"] == "Too many requests from this IP, please try again later."
            assert body["error"] == "RATE_LIMITED"

            # Another client behind the proxy has its own window
            other = await client.get("/", headers={"X-Forwarded-For": "203.0.113.7"})
            assert other.status == 200
        finally:
            await client.close()


@pytest.mark.unit
class TestRateLimiter:
    def test_fixed_window(self):
        now = [0.0]
        limiter = FixedWindowRateLimiter(max_requests=2, window=10.0, clock=lambda: now[0])

        assert limiter.hit("a").allowed
        assert limiter.hit("a").remaining == 0
        denied = limiter.hit("a")
        assert not denied.allowed
        assert denied.reset_after == 10.0
        assert limiter.hit("b").allowed

        now[0] = 10.0
        assert limiter.hit("a").allowed

    def test_rejects_bad_arguments(self):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(max_requests=0, window=1.0)
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(max_requests=1, window=0)

    def test_client_ip(self):
        request = make_mocked_request("GET", "/", headers={"X-Forwarded-For": "198.51.100.1, 10.0.0.1"})
        assert client_ip(request, trust_proxy=True) == "198.51.100.1"
        assert client_ip(request, trust_proxy=False) != "198.51.100.1"


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------


def _body(response: web.Response) -> dict:
    return json.loads(response.body)


@pytest.mark.unit
class TestResponses:
    def test_send_success(self):
        request = make_mocked_request("GET", "/api/v1/prices?region=west")
        response = send_success(request, {"price": 1.79}, "Fetched")
        body = _body(response)
        assert response.status == 200
        assert body["success"] is True
        assert body["data"] == {"price": 1.79}
        assert body["message"] == "Fetched"
        assert body["path"] == "/api/v1/prices?region=west"
        assert "timestamp" in body

    def test_none_fields_omitted(self):
        body = _body(send_success(make_mocked_request("GET", "/")))
        assert "data" not in body
        assert "message" not in body

    def test_send_created_and_no_content(self):
        request = make_mocked_request("POST", "/api/v1/prices")
        assert send_created(request, {"id": 1}).status == 201
        assert send_no_content(request).status == 204

    def test_send_not_found_defaults(self):
        body = _body(send_not_found(make_mocked_request("GET", "/x")))
        assert body == {**body, "success": False, "message": "Resource not found", "status_code": 404}

    def test_send_validation_error(self):
        response = send_validation_error(make_mocked_request("POST", "/x"), errors=[{"field": "price"}])
        body = _body(response)
        assert response.status == 400
        assert body["error"] == "Validation Error"
        assert body["data"] == {"errors": [{"field": "price"}]}

    def test_pagination(self):
        assert build_pagination(2, 10, 25) == {
            "current_page": 2,
            "total_pages": 3,
            "total_items": 25,
            "items_per_page": 10,
            "has_next": True,
            "has_prev": True,
        }
        empty = build_pagination(1, 10, 0)
        assert empty["total_pages"] == 1
        assert empty["has_next"] is False
        with pytest.raises(ValueError):
            build_pagination(0, 10, 5)

    def test_send_paginated(self):
        request = make_mocked_request("GET", "/api/v1/prices?page=1")
        body = _body(send_paginated(request, [1, 2], build_pagination(1, 2, 3)))
        assert body["data"] == [1, 2]
        assert body["pagination"]["has_next"] is True

    @pytest.mark.asyncio
    async def test_async_handler(self):
        @async_handler
        async def handler(request):
            raise KeyError("station")

        response = await handler(make_mocked_request("GET", "/x"))
        body = _body(response)
        assert response.status == 500
        assert body["message"] == "An unexpected error occurred"

    @pytest.mark.asyncio
    async def test_async_handler_passes_http_exceptions(self):
        @async_handler
        async def handler(request):
            raise web.HTTPFound("/elsewhere")

        with pytest.raises(web.HTTPFound):
            await handler(make_mocked_request("GET", "/x"))
