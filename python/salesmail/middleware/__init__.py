"""Middleware modules for the salesmail API."""

from salesmail.middleware.body_parsers import (
    JSONBodyParserMiddleware,
    URLEncodedBodyParserMiddleware,
)
from salesmail.middleware.cookies import CookieParserMiddleware
from salesmail.middleware.cors import CORSGateMiddleware
from salesmail.middleware.rate_limit import RateLimitMiddleware, create_rate_limit_storage
from salesmail.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from salesmail.middleware.request_logger import RequestLoggerMiddleware
from salesmail.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CORSGateMiddleware",
    "CookieParserMiddleware",
    "JSONBodyParserMiddleware",
    "REQUEST_ID_HEADER",
    "RateLimitMiddleware",
    "RequestIDMiddleware",
    "RequestLoggerMiddleware",
    "SecurityHeadersMiddleware",
    "URLEncodedBodyParserMiddleware",
    "create_rate_limit_storage",
]
