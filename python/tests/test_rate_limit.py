"""Tests for the rolling-window rate limiter.

Verifies:
- 100 requests per client are served, the 101st gets 429
- Standard RateLimit-* headers on every response, no legacy headers
- Counters are per client IP
- Requests are let through when the counter storage is down
"""

import pytest
from fastapi.testclient import TestClient
from limits.aio.storage import MemoryStorage
from limits.errors import StorageError
from structlog.testing import capture_logs

from salesmail.app import create_app
from salesmail.middleware.rate_limit import (
    RateLimitMiddleware,
    create_rate_limit_storage,
    get_client_ip,
)
from tests.helpers import call_asgi, http_scope, ok_app


class UnreachableStorage(MemoryStorage):
    """Storage whose backend connection is down."""

    async def acquire_entry(self, *args, **kwargs) -> bool:
        raise StorageError(ConnectionError("connection refused"))


class TestRateLimitThroughApp:
    """Rate limiting through the full pipeline with default settings."""

    def test_101st_request_is_rejected(self, client: TestClient):
        for _ in range(100):
            assert client.get("/health").status_code == 200

        response = client.get("/health")

        assert response.status_code == 429
        assert response.json() == {
            "error": "Too many requests, please try again later.",
            "path": "/health",
        }
        assert response.headers["ratelimit-limit"] == "100"
        assert response.headers["ratelimit-remaining"] == "0"
        assert int(response.headers["retry-after"]) > 0

    def test_standard_headers_on_success(self, client: TestClient):
        response = client.get("/health")

        assert response.headers["ratelimit-policy"] == "100;w=900"
        assert response.headers["ratelimit-limit"] == "100"
        assert response.headers["ratelimit-remaining"] == "99"
        assert 0 < int(response.headers["ratelimit-reset"]) <= 900

    def test_remaining_counts_down(self, client: TestClient):
        first = client.get("/health").headers["ratelimit-remaining"]
        second = client.get("/health").headers["ratelimit-remaining"]

        assert (int(first), int(second)) == (99, 98)

    def test_legacy_headers_are_not_sent(self, client: TestClient):
        response = client.get("/health")

        assert not any(name.lower().startswith("x-ratelimit") for name in response.headers)

    def test_rejected_request_skips_later_stages(self, make_client, route_calls):
        client = make_client(RATE_LIMIT_MAX=1)
        client.get("/api/v1/email/sequences")

        response = client.get("/api/v1/email/sequences")

        assert response.status_code == 429
        assert route_calls == ["sequence.list"]
        # Security headers sit inside the limiter
        assert "content-security-policy" not in response.headers

    def test_not_found_requests_count_toward_limit(self, make_client):
        client = make_client(RATE_LIMIT_MAX=2)
        client.get("/missing")
        client.get("/missing")

        assert client.get("/health").status_code == 429


class TestRateLimitMiddleware:
    """Unit tests driving the middleware directly."""

    @pytest.mark.asyncio
    async def test_limits_are_per_client_ip(self):
        middleware = RateLimitMiddleware(ok_app, max_requests=1, window_s=60, storage=MemoryStorage())

        first = await call_asgi(middleware, http_scope(client=("10.0.0.1", 1)))
        second = await call_asgi(middleware, http_scope(client=("10.0.0.1", 2)))
        other = await call_asgi(middleware, http_scope(client=("10.0.0.2", 1)))

        assert first["status"] == 200
        assert second["status"] == 429
        assert other["status"] == 200

    @pytest.mark.asyncio
    async def test_window_length_in_policy_header(self):
        middleware = RateLimitMiddleware(ok_app, max_requests=5, window_s=30, storage=MemoryStorage())

        result = await call_asgi(middleware, http_scope())

        assert result["headers"]["ratelimit-policy"] == "5;w=30"
        assert result["headers"]["ratelimit-remaining"] == "4"

    @pytest.mark.asyncio
    async def test_non_http_scopes_pass_through(self):
        seen = []

        async def lifespan_app(scope, receive, send):
            seen.append(scope["type"])

        middleware = RateLimitMiddleware(lifespan_app, storage=MemoryStorage())
        await middleware({"type": "lifespan"}, None, None)

        assert seen == ["lifespan"]


class TestGetClientIp:
    def test_uses_socket_peer(self):
        assert get_client_ip(http_scope(client=("192.0.2.7", 443))) == "192.0.2.7"

    def test_forwarded_headers_are_ignored(self):
        scope = http_scope(
            client=("192.0.2.7", 443), headers=[(b"x-forwarded-for", b"203.0.113.9")]
        )
        assert get_client_ip(scope) == "192.0.2.7"

    def test_missing_client(self):
        scope = http_scope()
        scope["client"] = None
        assert get_client_ip(scope) == "unknown"


class TestStorageFailure:
    """An unreachable counter store must not take the API down."""

    def test_requests_pass_when_storage_is_down(self, settings):
        app = create_app(settings, rate_limit_storage=UnreachableStorage())

        with TestClient(app) as client, capture_logs() as logs:
            response = client.get("/health")

        assert response.status_code == 200
        assert "ratelimit-limit" not in response.headers
        assert any(e["event"] == "rate_limit.storage_unavailable" for e in logs)

    @pytest.mark.asyncio
    async def test_failure_is_logged_with_client(self):
        middleware = RateLimitMiddleware(ok_app, storage=UnreachableStorage())

        with capture_logs() as logs:
            result = await call_asgi(middleware, http_scope(client=("10.0.0.9", 1)))

        assert result["status"] == 200
        warning = next(e for e in logs if e["event"] == "rate_limit.storage_unavailable")
        assert warning["client_ip"] == "10.0.0.9"
        assert warning["error"] == "connection refused"
        assert warning["log_level"] == "warning"


class TestCreateRateLimitStorage:
    @pytest.mark.parametrize("uri", ["memory://", "async+memory://"])
    def test_memory_uris_give_async_storage(self, uri: str):
        assert isinstance(create_rate_limit_storage(uri), MemoryStorage)
