"""Test helpers for building settings, apps and raw ASGI calls.

Provides:
- Settings construction with test defaults
- Route groups that echo what the pipeline parsed
- A minimal ASGI driver for middleware unit tests
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from salesmail.api.deps import get_cookies, get_json_body, get_signed_cookies
from salesmail.config import Settings

TEST_DATABASE_URL = "sqlite://"
ALLOWED_ORIGIN = "http://localhost:5173"
PRODUCTION_ORIGIN = "https://salesfrontend-eight.vercel.app"
FOREIGN_ORIGIN = "http://example.com"


def make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": TEST_DATABASE_URL,
        "NODE_ENV": "test",
        "DB_CONNECT_ATTEMPTS": 1,
        "DB_CONNECT_BACKOFF_S": 0,
        "LOG_JSON": False,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def make_route_groups(calls: list[str]) -> dict[str, APIRouter]:
    """Sequence and auth groups that record calls and echo parsed request data."""
    sequence = APIRouter()
    auth = APIRouter()

    @sequence.post("/echo")
    async def echo(
        request: Request,
        body: Any = Depends(get_json_body),
        cookies: dict = Depends(get_cookies),
        signed_cookies: dict = Depends(get_signed_cookies),
    ) -> dict:
        calls.append("sequence.echo")
        raw = await request.body()
        return {
            "body": body,
            "raw_length": len(raw),
            "cookies": cookies,
            "signed_cookies": signed_cookies,
        }

    @sequence.get("/sequences")
    async def list_sequences() -> dict:
        calls.append("sequence.list")
        return {"sequences": []}

    @sequence.get("/boom")
    async def boom() -> dict:
        raise RuntimeError("boom")

    @auth.post("/login")
    async def login(body: Any = Depends(get_json_body)) -> dict:
        calls.append("auth.login")
        return {"ok": True, "body": body}

    return {"/api/v1/email": sequence, "/api/v1/auth": auth}


async def call_asgi(app, scope: dict[str, Any], body_chunks: list[bytes] | None = None) -> dict:
    """Drive an ASGI app with one request; return status, headers and body."""
    chunks = list(body_chunks or [b""])
    sent: list[dict] = []

    async def receive() -> dict:
        if chunks:
            chunk = chunks.pop(0)
            return {"type": "http.request", "body": chunk, "more_body": bool(chunks)}
        return {"type": "http.disconnect"}

    async def send(message: dict) -> None:
        sent.append(message)

    await app(scope, receive, send)

    start = next(m for m in sent if m["type"] == "http.response.start")
    body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
    headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in start["headers"]}
    return {"status": start["status"], "headers": headers, "body": body}


def http_scope(
    path: str = "/",
    method: str = "GET",
    headers: list[tuple[bytes, bytes]] | None = None,
    client: tuple[str, int] = ("127.0.0.1", 50000),
) -> dict[str, Any]:
    """Build a minimal HTTP scope."""
    return {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": headers or [],
        "client": client,
        "server": ("testserver", 80),
        "scheme": "http",
        "http_version": "1.1",
    }


async def ok_app(scope, receive, send) -> None:
    """Inner ASGI app answering 200 "ok" with an X-Powered-By header."""
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"text/plain"), (b"x-powered-by", b"test")],
        }
    )
    await send({"type": "http.response.body", "body": b"ok"})
