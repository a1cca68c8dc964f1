"""Pure ASGI CORS gate.

Starlette's CORSMiddleware lets simple requests from unknown origins through
(it only withholds the allow headers). This gate rejects them instead:
- No Origin header (curl, server-to-server, tests): pass through untouched
- Origin not in the allow-list: 403 error envelope, no route runs
- OPTIONS on any path: preflight answered here with 200
- Otherwise: pass through, CORS headers injected on the response start
"""

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from salesmail.errors import ApiErrorCode
from salesmail.responses import error_json_response

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"]
ALLOWED_HEADERS = [
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "Accept",
    "Origin",
    "Cache-Control",
]
PREFLIGHT_STATUS = 200


class CORSGateMiddleware:
    """Allow-list CORS enforcement with credentials support.

    Args:
        app: The ASGI application.
        allowed_origins: Exact origins (scheme://host[:port]) that may call the API.
        allow_credentials: Whether browsers may send cookies cross-origin.
    """

    def __init__(
        self,
        app: ASGIApp,
        allowed_origins: list[str],
        allow_credentials: bool = True,
    ):
        self.app = app
        self.allowed_origins = set(allowed_origins)
        self.allow_credentials = allow_credentials

    def is_allowed(self, origin: str | None) -> bool:
        return origin is None or origin in self.allowed_origins

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")

        if not self.is_allowed(origin):
            response = error_json_response(
                ApiErrorCode.E_CORS_ORIGIN_DENIED, "Not allowed by CORS", scope["path"]
            )
            await response(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            response = Response(status_code=PREFLIGHT_STATUS, headers=self.preflight_headers(origin))
            await response(scope, receive, send)
            return

        if origin is None:
            await self.app(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                resp_headers = MutableHeaders(scope=message)
                for name, value in self.simple_headers(origin).items():
                    resp_headers[name] = value
                resp_headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)

    def simple_headers(self, origin: str) -> dict[str, str]:
        headers = {"Access-Control-Allow-Origin": origin}
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def preflight_headers(self, origin: str | None) -> dict[str, str]:
        headers = {
            "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
            "Access-Control-Allow-Headers": ",".join(ALLOWED_HEADERS),
            "Content-Length": "0",
        }
        if origin is not None:
            headers.update(self.simple_headers(origin))
            headers["Vary"] = "Origin"
        elif self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers
