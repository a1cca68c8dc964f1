"""FastAPI application creation and configuration.

This module builds the application from an explicit Settings object.
It registers exception handlers, the request pipeline, and routes.

Request Pipeline (Critical):
Middleware is passed to FastAPI as an ordered list, outermost first.
Every request crosses the stages in exactly this order:

0. RequestIDMiddleware (X-Request-ID, access log entry)
1. RateLimitMiddleware (rolling window per client IP, 429 short-circuit)
2. SecurityHeadersMiddleware (hardened response headers)
3. CORSGateMiddleware (allow-list, preflight short-circuit)
4. JSONBodyParserMiddleware (size-limited, strict)
5. CookieParserMiddleware
6. URLEncodedBodyParserMiddleware (size-limited, nested keys)
7. RequestLoggerMiddleware (method, path, timestamp)
8. Router: route groups, /health, /health/ready, 404 fallback

Stages that reject a request answer with the shared error envelope, so a
client sees {"error": ..., "path": ...} whichever stage stopped it.

Lifecycle:
- Startup creates the SQLAlchemy engine and waits for the database with
  bounded retries; the listener only starts accepting once this succeeds
- Shutdown disposes the engine
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from limits.aio.storage import Storage
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware import Middleware

from salesmail.api.routes import create_api_router
from salesmail.config import Settings
from salesmail.db.engine import create_db_engine, wait_for_database
from salesmail.db.session import create_session_factory
from salesmail.errors import ApiError
from salesmail.logging import get_logger
from salesmail.middleware import (
    CookieParserMiddleware,
    CORSGateMiddleware,
    JSONBodyParserMiddleware,
    RateLimitMiddleware,
    RequestIDMiddleware,
    RequestLoggerMiddleware,
    SecurityHeadersMiddleware,
    URLEncodedBodyParserMiddleware,
    create_rate_limit_storage,
)
from salesmail.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)

logger = get_logger(__name__)


def create_lifespan(settings: Settings):
    """Create the lifespan context manager bound to the given settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_db_engine(settings.database_url)
        try:
            await wait_for_database(
                engine,
                attempts=settings.db_connect_attempts,
                backoff_s=settings.db_connect_backoff_s,
                max_backoff_s=settings.db_connect_backoff_max_s,
            )
        except ApiError:
            engine.dispose()
            raise

        app.state.db_engine = engine
        app.state.session_factory = create_session_factory(engine)

        logger.info("server_started", port=settings.port, environment=settings.node_env)

        yield

        engine.dispose()
        logger.info("process_terminated")

    return lifespan


def build_pipeline(
    settings: Settings,
    rate_limit_storage: Storage | None = None,
    log_requests: bool = True,
) -> list[Middleware]:
    """Return the request pipeline, outermost stage first."""
    if rate_limit_storage is None:
        rate_limit_storage = create_rate_limit_storage(settings.rate_limit_storage_uri)

    return [
        Middleware(RequestIDMiddleware, log_requests=log_requests),
        Middleware(
            RateLimitMiddleware,
            max_requests=settings.rate_limit_max,
            window_s=settings.rate_limit_window_s,
            storage=rate_limit_storage,
        ),
        Middleware(SecurityHeadersMiddleware),
        Middleware(CORSGateMiddleware, allowed_origins=settings.cors_origin_list),
        Middleware(JSONBodyParserMiddleware, limit_bytes=settings.body_limit_bytes),
        Middleware(CookieParserMiddleware, secret=settings.cookie_secret),
        Middleware(URLEncodedBodyParserMiddleware, limit_bytes=settings.body_limit_bytes),
        Middleware(RequestLoggerMiddleware),
    ]


def create_app(
    settings: Settings,
    route_groups: dict[str, APIRouter] | None = None,
    rate_limit_storage: Storage | None = None,
    log_requests: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Process configuration, built once at startup.
        route_groups: Optional prefix -> router mapping replacing the default
            sequence and auth groups.
        rate_limit_storage: Optional async `limits` storage (tests pass a fresh one).
        log_requests: Whether to emit request_completed access entries.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Salesmail API",
        description="Backend API for email sequences and authentication",
        version="0.1.0",
        # Only the mounted groups and health checks are served
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=create_lifespan(settings),
        middleware=build_pipeline(settings, rate_limit_storage, log_requests),
    )
    app.state.settings = settings

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router(route_groups))

    return app
