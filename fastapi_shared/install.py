"""One-call registration of the shared middleware stack."""

from typing import Optional

from fastapi import FastAPI

from fastapi_shared.app_check.config import AppCheckConfig
from fastapi_shared.app_check.middleware import AppCheckMiddleware
from fastapi_shared.middleware.context import RequestContextMiddleware
from fastapi_shared.middleware.cors import CorsConfig, add_cors_middleware
from fastapi_shared.middleware.error_handler import ErrorHandlerMiddleware
from fastapi_shared.middleware.rate_limit import RateLimitConfig, RateLimitMiddleware
from fastapi_shared.request_logging.strategies import (
    RequestIdStrategy,
    SessionTrackingStrategy,
    UserIdStrategy,
)


def install_middleware(
    app: FastAPI,
    *,
    request_id_strategy: RequestIdStrategy,
    session_strategy: Optional[SessionTrackingStrategy] = None,
    user_id_strategy: Optional[UserIdStrategy] = None,
    app_check_config: Optional[AppCheckConfig] = None,
    rate_limit_config: Optional[RateLimitConfig] = None,
    cors_config: Optional[CorsConfig] = None,
    debug: bool = False,
    app_version: Optional[str] = None,
) -> None:
    """
    Register the middleware stack on an app.

    Request order, outermost first:
        CORS -> rate limit -> App Check -> request context -> error handler -> route

    Starlette runs the last added middleware first, so they are added in
    reverse. App Check and rate limiting are skipped when their config is None.
    """
    app.add_middleware(ErrorHandlerMiddleware, debug=debug)
    app.add_middleware(
        RequestContextMiddleware,
        request_id_strategy=request_id_strategy,
        session_strategy=session_strategy,
        user_id_strategy=user_id_strategy,
        app_version=app_version,
    )
    if app_check_config is not None:
        app.add_middleware(AppCheckMiddleware, config=app_check_config, debug=debug)
    if rate_limit_config is not None:
        app.add_middleware(RateLimitMiddleware, config=rate_limit_config)
    if cors_config is not None:
        add_cors_middleware(app, cors_config)
