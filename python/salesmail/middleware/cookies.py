"""Cookie header parsing.

Exposes the parsed Cookie header as request.state.cookies. With a secret
configured, signed cookies are verified and moved to request.state.signed_cookies.
"""

from starlette.datastructures import Headers
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Receive, Scope, Send

from salesmail.services.cookies import decode_json_cookie, split_signed_cookies


class CookieParserMiddleware:
    """Pure ASGI middleware that parses cookies once per request.

    Args:
        app: The ASGI application.
        secret: Optional signing secret. Without it no cookie is treated as signed.
    """

    def __init__(self, app: ASGIApp, secret: str | None = None):
        self.app = app
        self.secret = secret

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw = cookie_parser(Headers(scope=scope).get("cookie", ""))
        signed: dict = {}
        if self.secret:
            raw, signed = split_signed_cookies(raw, self.secret)

        state = scope.setdefault("state", {})
        state["cookies"] = {name: decode_json_cookie(value) for name, value in raw.items()}
        state["signed_cookies"] = signed

        await self.app(scope, receive, send)
