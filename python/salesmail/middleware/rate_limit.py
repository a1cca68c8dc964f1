"""Per-client rolling-window rate limiting.

Pure ASGI middleware backed by the `limits` async moving-window strategy:
- Each client IP may issue `max_requests` within any `window_s` second span
- Every response carries the standard RateLimit-* headers
  (RateLimit-Policy, RateLimit-Limit, RateLimit-Remaining, RateLimit-Reset)
- Legacy X-RateLimit-* headers are never emitted
- Over-limit requests short-circuit with 429 and a Retry-After header

Counters live in the configured `limits` storage. memory:// keeps them in
process; redis://... shares them between workers.

Fail mode: if the storage is unreachable the request is let through without
RateLimit-* headers and a warning is logged.
"""

import math
import time

from limits import RateLimitItemPerSecond
from limits.aio.storage import Storage
from limits.aio.strategies import MovingWindowRateLimiter
from limits.errors import StorageError
from limits.storage import storage_from_string
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from salesmail.errors import ApiErrorCode
from salesmail.logging import get_logger
from salesmail.responses import error_json_response

logger = get_logger(__name__)

RATE_LIMIT_NAMESPACE = "salesmail"
ASYNC_SCHEME_PREFIX = "async+"


def create_rate_limit_storage(uri: str = "memory://") -> Storage:
    """Build an async `limits` storage from a URI such as memory:// or redis://host:6379.

    Storage failures surface as limits.errors.StorageError.
    """
    if not uri.startswith(ASYNC_SCHEME_PREFIX):
        uri = ASYNC_SCHEME_PREFIX + uri
    return storage_from_string(uri, wrap_exceptions=True)


def get_client_ip(scope: Scope) -> str:
    """Return the socket peer address for the request."""
    client = scope.get("client")
    if client:
        return client[0]
    return "unknown"


class RateLimitMiddleware:
    """Pure ASGI rolling-window rate limiter.

    Args:
        app: The ASGI application.
        max_requests: Requests allowed per client within the window.
        window_s: Window length in seconds.
        storage: An async `limits` storage. Defaults to in-memory.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = 100,
        window_s: int = 15 * 60,
        storage: Storage | None = None,
    ):
        self.app = app
        self.max_requests = max_requests
        self.window_s = window_s
        self.item = RateLimitItemPerSecond(max_requests, window_s, namespace=RATE_LIMIT_NAMESPACE)
        self.limiter = MovingWindowRateLimiter(storage or create_rate_limit_storage())

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client_ip = get_client_ip(scope)
        try:
            allowed = await self.limiter.hit(self.item, client_ip)
            reset_time, remaining = await self.limiter.get_window_stats(self.item, client_ip)
        except StorageError as e:
            logger.warning(
                "rate_limit.storage_unavailable",
                client_ip=client_ip,
                error=str(e.storage_error),
            )
            await self.app(scope, receive, send)
            return

        headers = self.standard_headers(remaining if allowed else 0, reset_time)

        if not allowed:
            logger.warning("rate_limit.blocked", client_ip=client_ip, limit=self.max_requests)
            headers["Retry-After"] = headers["RateLimit-Reset"]
            response = error_json_response(
                ApiErrorCode.E_RATE_LIMITED,
                "Too many requests, please try again later.",
                scope["path"],
                headers=headers,
            )
            await response(scope, receive, send)
            return

        async def send_with_rate_limit_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                resp_headers = MutableHeaders(scope=message)
                for name, value in headers.items():
                    resp_headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_rate_limit_headers)

    def standard_headers(self, remaining: int, reset_time: float) -> dict[str, str]:
        """Build the standard RateLimit-* header set."""
        reset_in = max(0, math.ceil(reset_time - time.time()))
        return {
            "RateLimit-Policy": f"{self.max_requests};w={self.window_s}",
            "RateLimit-Limit": str(self.max_requests),
            "RateLimit-Remaining": str(max(0, remaining)),
            "RateLimit-Reset": str(reset_in),
        }
