"""fastapi_shared - cross-cutting middleware for FastAPI services.

Structured error responses, progressive request context for logging,
Firebase App Check verification, CORS and rate limiting.
"""

from fastapi_shared.app_check import (
    AppCheckConfig,
    AppCheckMiddleware,
    AppCheckTokenCache,
    FirebaseAppCheckService,
)
from fastapi_shared.config import Settings, get_settings
from fastapi_shared.errors import ERROR_CATALOG, ApiException, ErrorKind
from fastapi_shared.install import install_middleware
from fastapi_shared.logging_config import request_id_var, setup_logging
from fastapi_shared.middleware import (
    CorsConfig,
    EndpointRateLimit,
    ErrorHandlerMiddleware,
    RateLimitConfig,
    RateLimitMiddleware,
    RequestContextMiddleware,
    add_cors_middleware,
    get_request_context,
)
from fastapi_shared.request_logging import (
    AppCheckSessionStrategy,
    GCloudTraceStrategy,
    JwtUserIdStrategy,
    LogHandler,
    LogPayload,
    PapertrailApiWrapper,
    RequestContext,
    SolarWindsApiWrapper,
    UuidStrategy,
    get_log_handler,
    init_log_handler,
    shutdown_log_handler,
)

__version__ = "0.1.0"

__all__ = [
    "ERROR_CATALOG",
    "ApiException",
    "AppCheckConfig",
    "AppCheckMiddleware",
    "AppCheckSessionStrategy",
    "AppCheckTokenCache",
    "CorsConfig",
    "EndpointRateLimit",
    "ErrorHandlerMiddleware",
    "ErrorKind",
    "FirebaseAppCheckService",
    "GCloudTraceStrategy",
    "JwtUserIdStrategy",
    "LogHandler",
    "LogPayload",
    "PapertrailApiWrapper",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "RequestContext",
    "RequestContextMiddleware",
    "Settings",
    "SolarWindsApiWrapper",
    "UuidStrategy",
    "add_cors_middleware",
    "get_log_handler",
    "get_request_context",
    "get_settings",
    "init_log_handler",
    "install_middleware",
    "request_id_var",
    "setup_logging",
    "shutdown_log_handler",
]
