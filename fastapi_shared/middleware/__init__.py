"""Cross-cutting middleware shared by FastAPI services."""

from fastapi_shared.middleware.context import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    get_request_context,
)
from fastapi_shared.middleware.cors import CorsConfig, add_cors_middleware
from fastapi_shared.middleware.error_handler import ErrorHandlerMiddleware
from fastapi_shared.middleware.rate_limit import (
    EndpointRateLimit,
    RateLimitConfig,
    RateLimitMiddleware,
    default_client_identifier,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "CorsConfig",
    "EndpointRateLimit",
    "ErrorHandlerMiddleware",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "RequestContextMiddleware",
    "add_cors_middleware",
    "default_client_identifier",
    "get_request_context",
]
