"""Size-limited JSON and URL-encoded body parsers.

Pure ASGI middleware. A parser only engages when the request Content-Type
matches it; other requests pass through untouched. When it engages it:
1. Rejects a declared Content-Length above the limit before reading
2. Buffers the body, aborting with 413 once the limit is crossed
3. Parses it and stores the result on request.state.body
4. Replays the buffered bytes so route handlers can still read the body

Bodies of exactly `limit_bytes` are accepted. JSON is parsed strictly: the
NaN/Infinity literals and nesting deeper than MAX_JSON_DEPTH are rejected
with 400.
"""

import codecs
import json
from abc import ABC, abstractmethod
from typing import Any

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from salesmail.errors import ApiError, ApiErrorCode, InvalidRequestError, PayloadTooLargeError
from salesmail.responses import error_json_response
from salesmail.services.querystring import DEFAULT_PARAMETER_LIMIT, ParameterLimitError, parse_nested

DEFAULT_LIMIT_BYTES = 10 * 1024
MAX_JSON_DEPTH = 100


def _reject_constant(name: str) -> Any:
    raise InvalidRequestError(message="Malformed JSON body")


def json_depth(text: str) -> int:
    """Deepest object/array nesting in a JSON document, ignoring string contents."""
    depth = deepest = 0
    in_string = escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "[{":
            depth += 1
            deepest = max(deepest, depth)
        elif char in "]}":
            depth -= 1
    return deepest


def is_known_charset(charset: str) -> bool:
    try:
        codecs.lookup(charset)
    except LookupError:
        return False
    return True


def parse_content_type(value: str | None) -> tuple[str, dict[str, str]]:
    """Split a Content-Type header into (media type, params)."""
    if not value:
        return "", {}
    media_type, *raw_params = value.split(";")
    params = {}
    for raw in raw_params:
        name, sep, param_value = raw.strip().partition("=")
        if sep:
            params[name.strip().lower()] = param_value.strip().strip('"')
    return media_type.strip().lower(), params


async def read_body(receive: Receive, limit_bytes: int) -> bytes:
    """Drain http.request messages, raising once more than limit_bytes arrive."""
    chunks: list[bytes] = []
    received = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunk = message.get("body", b"")
        received += len(chunk)
        if received > limit_bytes:
            raise PayloadTooLargeError(message="request entity too large")
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def replay_receive(body: bytes, receive: Receive) -> Receive:
    """Build a receive callable that yields the buffered body once."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class BodyParserMiddleware(ABC):
    """Shared buffering/limit/replay logic for the concrete parsers."""

    def __init__(self, app: ASGIApp, limit_bytes: int = DEFAULT_LIMIT_BYTES):
        self.app = app
        self.limit_bytes = limit_bytes

    @abstractmethod
    def matches(self, media_type: str) -> bool:
        """Whether this parser handles the given media type."""

    @abstractmethod
    def parse(self, body: bytes, charset: str) -> Any:
        """Parse the raw body. Raises ApiError on malformed input."""

    @abstractmethod
    def check_charset(self, charset: str) -> bool:
        """Whether the declared charset is supported."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        media_type, params = parse_content_type(headers.get("content-type"))
        if not self.matches(media_type):
            await self.app(scope, receive, send)
            return

        try:
            charset = params.get("charset", "utf-8").lower()
            if not self.check_charset(charset):
                raise ApiError(
                    ApiErrorCode.E_UNSUPPORTED_MEDIA_TYPE, f'unsupported charset "{charset.upper()}"'
                )

            declared = headers.get("content-length")
            if declared is not None and declared.isdigit() and int(declared) > self.limit_bytes:
                raise PayloadTooLargeError(message="request entity too large")

            body = await read_body(receive, self.limit_bytes)
            parsed = self.parse(body, charset)
        except ApiError as e:
            response = error_json_response(e.code, e.message, scope["path"])
            await response(scope, receive, send)
            return

        scope.setdefault("state", {})["body"] = parsed
        await self.app(scope, replay_receive(body, receive), send)


class JSONBodyParserMiddleware(BodyParserMiddleware):
    """application/json (and +json) bodies; top level must be object or array."""

    def matches(self, media_type: str) -> bool:
        return media_type == "application/json" or media_type.endswith("+json")

    def check_charset(self, charset: str) -> bool:
        return charset.startswith("utf-") and is_known_charset(charset)

    def parse(self, body: bytes, charset: str) -> Any:
        if not body.strip():
            return {}
        try:
            text = body.decode(charset)
        except UnicodeDecodeError as e:
            raise InvalidRequestError(message="Malformed JSON body") from e

        if text.lstrip()[:1] not in ("{", "["):
            raise InvalidRequestError(message="Malformed JSON body")
        if json_depth(text) > MAX_JSON_DEPTH:
            raise InvalidRequestError(message="JSON body nested too deeply")

        try:
            return json.loads(text, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise InvalidRequestError(message="Malformed JSON body") from e


class URLEncodedBodyParserMiddleware(BodyParserMiddleware):
    """application/x-www-form-urlencoded bodies with nested/array key syntax."""

    def __init__(
        self,
        app: ASGIApp,
        limit_bytes: int = DEFAULT_LIMIT_BYTES,
        parameter_limit: int = DEFAULT_PARAMETER_LIMIT,
    ):
        super().__init__(app, limit_bytes)
        self.parameter_limit = parameter_limit

    def matches(self, media_type: str) -> bool:
        return media_type == "application/x-www-form-urlencoded"

    def check_charset(self, charset: str) -> bool:
        return charset == "utf-8"

    def parse(self, body: bytes, charset: str) -> Any:
        try:
            text = body.decode(charset)
        except UnicodeDecodeError as e:
            raise InvalidRequestError(message="Malformed form body") from e

        try:
            return parse_nested(text, parameter_limit=self.parameter_limit)
        except ParameterLimitError as e:
            raise PayloadTooLargeError(message="too many parameters") from e
