"""App Check middleware for FastAPI applications."""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fastapi_shared.app_check.config import AppCheckConfig
from fastapi_shared.app_check.service import FirebaseAppCheckService
from fastapi_shared.app_check.token_cache import AppCheckTokenCache
from fastapi_shared.errors import ApiException
from fastapi_shared.metrics import APP_CHECK_REQUESTS_TOTAL
from fastapi_shared.request_logging.legacy import exception_context, read_json_or_body
from fastapi_shared.request_logging.payload import LogPayload
from fastapi_shared.request_logging.strategies import APP_CHECK_HEADER

logger = logging.getLogger(__name__)


class AppCheckMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests without a valid ``X-Firebase-AppCheck`` token.

    - OPTIONS requests and exempt paths pass through
    - Dev mode passes everything through
    - A missing or empty token is rejected with 401 before any verification
    - Verified tokens are cached, so repeat calls skip the Firebase round trip
    """

    def __init__(
        self,
        app,
        config: AppCheckConfig,
        debug: bool = False,
        service: Optional[FirebaseAppCheckService] = None,
        token_cache: Optional[AppCheckTokenCache] = None,
    ):
        """
        Initialize the App Check middleware.

        Args:
            app: The ASGI application
            config: App Check configuration
            debug: Include internal messages in error responses
            service: Verification service (default: built from config)
            token_cache: Cache of verified tokens (default: built from config)
        """
        super().__init__(app)
        self.config = config
        self.debug = debug
        self.service = service or FirebaseAppCheckService(config)
        self.token_cache = token_cache or AppCheckTokenCache(
            max_size=config.cache_max_size,
            token_duration=config.cache_duration,
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if request.method == "OPTIONS":
            return await call_next(request)

        if path in self.config.exempt_paths:
            logger.debug(f"Skipping App Check for exempt path: {path}")
            APP_CHECK_REQUESTS_TOTAL.labels(outcome="exempt").inc()
            return await call_next(request)

        if self.config.enable_dev_mode:
            logger.info("App Check bypassed in dev mode")
            APP_CHECK_REQUESTS_TOTAL.labels(outcome="bypassed").inc()
            return await call_next(request)

        token = request.headers.get(APP_CHECK_HEADER)
        if not token:
            logger.warning("Missing App Check token", extra={"path": path})
            APP_CHECK_REQUESTS_TOTAL.labels(outcome="missing").inc()
            return ApiException.unauthorized("Missing App Check token").to_response(self.debug)

        try:
            if self.token_cache.contains(token):
                logger.debug("App Check token found in cache")
                APP_CHECK_REQUESTS_TOTAL.labels(outcome="cache_hit").inc()
                return await call_next(request)

            is_valid = await self.service.verify_token(token)
            if not is_valid:
                logger.warning("Invalid App Check token", extra={"path": path})
                APP_CHECK_REQUESTS_TOTAL.labels(outcome="rejected").inc()
                return ApiException.unauthorized("Invalid App Check token").to_response(self.debug)

            self.token_cache.add(token)
        except Exception as e:
            await self._log_failure(request, e)
            APP_CHECK_REQUESTS_TOTAL.labels(outcome="error").inc()
            return ApiException.internal_server_error(
                f"App Check verification failed: {e}",
                response_message="Internal server error",
            ).to_response(self.debug)

        logger.debug("App Check token verified and cached")
        APP_CHECK_REQUESTS_TOTAL.labels(outcome="verified").inc()
        return await call_next(request)

    async def _log_failure(self, request: Request, error: Exception) -> None:
        body = await read_json_or_body(request)
        context = exception_context(request, body, error)
        logger.error(
            "App Check verification failed with context",
            exc_info=(type(error), error, error.__traceback__),
            extra={"payload": LogPayload.for_context(context)},
        )
