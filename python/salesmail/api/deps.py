"""FastAPI dependencies for route handlers.

Route groups read what the request pipeline parsed through these instead of
re-parsing the request themselves.
"""

from typing import Any

from fastapi import Request

from salesmail.db.session import get_db

__all__ = ["get_cookies", "get_db", "get_form_body", "get_json_body", "get_signed_cookies"]


def get_json_body(request: Request) -> Any:
    """Body parsed by the JSON parser stage ({} when none was parsed)."""
    return getattr(request.state, "body", {})


def get_form_body(request: Request) -> Any:
    """Body parsed by the URL-encoded parser stage ({} when none was parsed)."""
    return getattr(request.state, "body", {})


def get_cookies(request: Request) -> dict[str, Any]:
    """Cookies parsed by the cookie stage."""
    return getattr(request.state, "cookies", {})


def get_signed_cookies(request: Request) -> dict[str, Any]:
    """Verified signed cookies; a failed signature maps to False."""
    return getattr(request.state, "signed_cookies", {})
