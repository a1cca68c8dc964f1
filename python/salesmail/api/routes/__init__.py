"""API route definitions.

Route groups are mounted by prefix. The defaults are the package's own
sequence and auth routers; create_app accepts replacements so tests and
deployments can supply their own handlers.
"""

from fastapi import APIRouter

from salesmail.api.routes.auth import router as auth_router
from salesmail.api.routes.health import router as health_router
from salesmail.api.routes.sequence import router as sequence_router

SEQUENCE_PREFIX = "/api/v1/email"
AUTH_PREFIX = "/api/v1/auth"


def default_route_groups() -> dict[str, APIRouter]:
    """Return the prefix -> router mapping mounted by default."""
    return {
        SEQUENCE_PREFIX: sequence_router,
        AUTH_PREFIX: auth_router,
    }


def create_api_router(route_groups: dict[str, APIRouter] | None = None) -> APIRouter:
    """Create and configure the API router.

    Args:
        route_groups: Mapping of path prefix to router. Defaults to
            default_route_groups().

    Returns:
        Configured APIRouter with health and all route groups registered.
    """
    if route_groups is None:
        route_groups = default_route_groups()

    api_router = APIRouter()
    for prefix, group in route_groups.items():
        api_router.include_router(group, prefix=prefix)
    api_router.include_router(health_router, tags=["health"])

    return api_router


__all__ = ["AUTH_PREFIX", "SEQUENCE_PREFIX", "create_api_router", "default_route_groups"]
