"""Correlation IDs and the per-request access entry.

Outermost pipeline stage. It wraps every later stage, so rejections from the
rate limiter, CORS gate and body parsers still carry an X-Request-ID header
and produce a request_completed entry.

An incoming X-Request-ID is reused when it is a token of 1-128 characters
from [A-Za-z0-9._-]; UUIDs are lowercased. Anything else is replaced with a
fresh UUID4.
"""

import re
import time
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from salesmail.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_TOKEN = re.compile(r"[A-Za-z0-9._-]{1,128}")
_UUID_LENGTH = 36

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Return the ID to use for a request given its X-Request-ID header value."""
    if not incoming or not _REQUEST_ID_TOKEN.fullmatch(incoming):
        return str(uuid.uuid4())

    if len(incoming) == _UUID_LENGTH:
        try:
            return str(uuid.UUID(incoming))
        except ValueError:
            pass
    return incoming


class RequestIDMiddleware:
    """Pure ASGI stage assigning X-Request-ID and logging request_completed.

    Args:
        app: The ASGI application.
        log_requests: Whether to emit the request_completed entry.
    """

    def __init__(self, app: ASGIApp, log_requests: bool = True):
        self.app = app
        self.log_requests = log_requests

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        request_id = resolve_request_id(Headers(scope=scope).get(REQUEST_ID_HEADER))
        scope.setdefault("state", {})["request_id"] = request_id
        set_request_context(request_id)

        status_code = None

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception:
            logger.exception("request_failed", method=scope["method"], path=scope["path"])
            raise
        finally:
            if self.log_requests and status_code is not None:
                logger.info(
                    "request_completed",
                    method=scope["method"],
                    path=scope["path"],
                    status_code=status_code,
                    duration_ms=round((time.monotonic() - started) * 1000, 2),
                )
            clear_request_context()
