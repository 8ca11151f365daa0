"""Per-client rate limiting backed by the ``limits`` library."""

import logging
import time
from typing import Callable, Optional

from fastapi.responses import JSONResponse
from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fastapi_shared.metrics import RATE_LIMIT_EXCEEDED_TOTAL

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_KEY = "default"


def default_client_identifier(request: Request) -> str:
    """Client IP: first X-Forwarded-For entry (Cloud Run), else the peer address."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def _describe_window(seconds: int) -> str:
    if seconds == 3600:
        return "hour"
    if seconds == 60:
        return "minute"
    if seconds == 86400:
        return "day"
    return f"{seconds} seconds"


def default_rate_limit_exceeded_response(max_requests: int, window_size: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": (
                f"Rate limit exceeded. Maximum {max_requests} requests per "
                f"{_describe_window(window_size)} allowed."
            )
        },
    )


class EndpointRateLimit(BaseModel):
    """Rate limit for one endpoint path."""

    path: str
    max_requests: int = Field(..., gt=0)
    window_size: int = Field(3600, gt=0, description="Window length in seconds")


class RateLimitConfig(BaseModel):
    """Rate limiting configuration."""

    enable_dev_mode: bool = False
    default_max_requests: int = Field(60, gt=0)
    default_window_size: int = Field(3600, gt=0, description="Window length in seconds")
    endpoint_limits: list[EndpointRateLimit] = Field(default_factory=list)
    exempt_paths: list[str] = Field(default_factory=list)
    client_identifier_extractor: Optional[Callable[[Request], str]] = None
    on_rate_limit_exceeded: Optional[Callable[[Request], Response]] = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies per-client request limits using a moving window.

    Endpoint-specific limits take precedence over the default limit. Exempt
    paths, OPTIONS requests and dev mode are never limited. Counters are kept
    in process memory.
    """

    def __init__(self, app, config: Optional[RateLimitConfig] = None):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.identify = self.config.client_identifier_extractor or default_client_identifier
        self.limiter = MovingWindowRateLimiter(MemoryStorage())

        self.default_limit = RateLimitItemPerSecond(
            self.config.default_max_requests, self.config.default_window_size
        )
        self.endpoint_limits: dict[str, RateLimitItem] = {
            limit.path: RateLimitItemPerSecond(limit.max_requests, limit.window_size)
            for limit in self.config.endpoint_limits
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if (
            self.config.enable_dev_mode
            or request.method == "OPTIONS"
            or path in self.config.exempt_paths
        ):
            return await call_next(request)

        if path in self.endpoint_limits:
            key, item = path, self.endpoint_limits[path]
        else:
            key, item = DEFAULT_LIMIT_KEY, self.default_limit

        client_id = self.identify(request)
        if self.limiter.hit(item, key, client_id):
            return await call_next(request)

        logger.warning(
            f"Rate limit exceeded for IP {client_id} on {path}",
            extra={"client_id": client_id, "path": path, "limit": str(item)},
        )
        RATE_LIMIT_EXCEEDED_TOTAL.labels(endpoint=key).inc()

        if self.config.on_rate_limit_exceeded is not None:
            return self.config.on_rate_limit_exceeded(request)

        response = default_rate_limit_exceeded_response(item.amount, item.get_expiry())
        stats = self.limiter.get_window_stats(item, key, client_id)
        response.headers["Retry-After"] = str(max(1, int(stats.reset_time - time.time())))
        return response
