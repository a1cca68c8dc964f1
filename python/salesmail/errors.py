"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"

    # Authorization errors (403)
    E_CORS_ORIGIN_DENIED = "E_CORS_ORIGIN_DENIED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"

    # Body parser errors
    E_PAYLOAD_TOO_LARGE = "E_PAYLOAD_TOO_LARGE"  # 413
    E_UNSUPPORTED_MEDIA_TYPE = "E_UNSUPPORTED_MEDIA_TYPE"  # 415

    # Throttling (429)
    E_RATE_LIMITED = "E_RATE_LIMITED"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500
    E_DATABASE_UNAVAILABLE = "E_DATABASE_UNAVAILABLE"  # 503


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_CORS_ORIGIN_DENIED: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_PAYLOAD_TOO_LARGE: 413,
    ApiErrorCode.E_UNSUPPORTED_MEDIA_TYPE: 415,
    ApiErrorCode.E_RATE_LIMITED: 429,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_DATABASE_UNAVAILABLE: 503,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not Found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class PayloadTooLargeError(ApiError):
    """Request body exceeded the configured size or parameter limit."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_PAYLOAD_TOO_LARGE,
        message: str = "Payload too large",
    ):
        super().__init__(code, message)


class DatabaseUnavailableError(ApiError):
    """Database could not be reached."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_DATABASE_UNAVAILABLE,
        message: str = "Database unavailable",
    ):
        super().__init__(code, message)
