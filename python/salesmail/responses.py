"""API error envelope helpers and exception handlers.

Every error response uses the same envelope:
    { "error": "<human-readable message>", "path": "<request path>" }

The unmatched-route response is the canonical example:
    { "error": "Not Found", "path": "/unknown/path" }

Middleware that short-circuits a request (rate limiter, CORS gate, body
parsers) builds its response with error_json_response so clients see one
shape regardless of which pipeline stage rejected them.
"""

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from salesmail.errors import ERROR_CODE_TO_STATUS, ApiError, ApiErrorCode
from salesmail.logging import get_logger

logger = get_logger(__name__)

# Map common HTTP status codes to our error codes
STATUS_TO_CODE: dict[int, ApiErrorCode] = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    403: ApiErrorCode.E_CORS_ORIGIN_DENIED,
    404: ApiErrorCode.E_NOT_FOUND,
    413: ApiErrorCode.E_PAYLOAD_TOO_LARGE,
    415: ApiErrorCode.E_UNSUPPORTED_MEDIA_TYPE,
    422: ApiErrorCode.E_INVALID_REQUEST,
    429: ApiErrorCode.E_RATE_LIMITED,
    503: ApiErrorCode.E_DATABASE_UNAVAILABLE,
}


def error_response(message: str, path: str) -> dict[str, Any]:
    """Create an error response envelope.

    Args:
        message: Human-readable error message.
        path: The request path, echoed back verbatim.

    Returns:
        Dict with "error" and "path" keys.
    """
    return {"error": message, "path": path}


def error_json_response(
    code: ApiErrorCode,
    message: str,
    path: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a JSONResponse carrying the error envelope for the given code."""
    logger.info("request_rejected", code=code.value, path=path)
    return JSONResponse(
        status_code=ERROR_CODE_TO_STATUS.get(code, 500),
        content=error_response(message, path),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Handle ApiError exceptions and return proper JSON response."""
    return error_json_response(exc.code, exc.message, request.url.path)


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Handle Starlette/FastAPI HTTPException and return proper JSON response.

    405 is reported as 404: a method a route does not declare falls through
    to the not-found handler, the same as an unknown path.
    """
    if exc.status_code == 405:
        status_code, message, headers = 404, "Not Found", None
    else:
        status_code = exc.status_code
        message = str(exc.detail) if exc.detail else "An error occurred"
        headers = getattr(exc, "headers", None)

    code = STATUS_TO_CODE.get(status_code, ApiErrorCode.E_INTERNAL)
    logger.info("request_rejected", code=code.value, status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content=error_response(message, request.url.path),
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors raised by route parameter parsing."""
    return error_json_response(
        ApiErrorCode.E_INVALID_REQUEST, "Invalid request body", request.url.path
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions and return 500 with E_INTERNAL.

    Logs the exception server-side but never leaks details to client.
    """
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=500,
        content=error_response("Internal server error", request.url.path),
    )
