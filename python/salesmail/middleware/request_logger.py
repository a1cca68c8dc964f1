"""Per-request log line emitted before the route handler runs."""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from salesmail.logging import get_logger, set_request_context
from salesmail.services.clock import iso_now

logger = get_logger(__name__)


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Logs method, path and timestamp for every request that reaches routing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        set_request_context(
            getattr(request.state, "request_id", None),
            path=request.url.path,
            method=request.method,
        )
        logger.info(
            "request_received",
            method=request.method,
            path=request.url.path,
            timestamp=iso_now(),
        )
        return await call_next(request)
