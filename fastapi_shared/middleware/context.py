"""Middleware that attaches a RequestContext to every request."""

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fastapi_shared.logging_config import request_id_var
from fastapi_shared.request_logging.context import RequestContext
from fastapi_shared.request_logging.strategies import (
    RequestIdStrategy,
    SessionTrackingStrategy,
    UserIdStrategy,
)

# Response header echoing the request ID
REQUEST_ID_HEADER = "X-Request-ID"

# Attribute on request.state holding the context
STATE_ATTR = "request_context"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Builds a RequestContext per request with the configured strategies.

    The context is stored on ``request.state`` (see get_request_context),
    its request ID is bound to the logging context variable for the duration
    of the request, and the ID is echoed in the X-Request-ID response header.

    Route handlers enrich it:

        @app.get("/weather")
        async def weather(request: Request):
            context = get_request_context(request)
            context.add_field("cache_hit", True)
            context.log_success(logger)
            ...
    """

    def __init__(
        self,
        app,
        request_id_strategy: RequestIdStrategy,
        session_strategy: Optional[SessionTrackingStrategy] = None,
        user_id_strategy: Optional[UserIdStrategy] = None,
        app_version: Optional[str] = None,
    ):
        super().__init__(app)
        self.request_id_strategy = request_id_strategy
        self.session_strategy = session_strategy
        self.user_id_strategy = user_id_strategy
        self.app_version = app_version

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(
            request,
            request_id_strategy=self.request_id_strategy,
            session_strategy=self.session_strategy,
            user_id_strategy=self.user_id_strategy,
        )
        if self.app_version is not None:
            context.add_field("app_version", self.app_version)

        setattr(request.state, STATE_ATTR, context)
        token = request_id_var.set(context.request_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id
            return response
        finally:
            request_id_var.reset(token)


def get_request_context(request: Request) -> Optional[RequestContext]:
    """Return the request's context, or None when the middleware is not installed.

    Also usable as a FastAPI dependency: ``Depends(get_request_context)``.
    """
    return getattr(request.state, STATE_ATTR, None)
