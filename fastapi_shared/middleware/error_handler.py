"""Middleware converting exceptions into structured JSON responses."""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fastapi_shared.errors import ApiException
from fastapi_shared.middleware.context import get_request_context


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Central exception boundary for route handlers.

    - ApiException: logged at WARNING (4xx) or ERROR with traceback (5xx) and
      returned via ``to_response``
    - Any other exception: logged at ERROR with traceback and returned as a
      generic 500 ``{"status": 500, "error": "Internal server error"}``
    - Successful responses finalize the RequestContext (if present) with the
      response status; logging success is left to the route

    Handlers can then simply raise:

        @app.post("/places")
        async def create_place(body: PlaceIn):
            if not body.name:
                raise ApiException.bad_request("Empty place name")
            ...

    Install it inside RequestContextMiddleware so error logs carry the
    request context.
    """

    def __init__(self, app, debug: bool = False, logger: Optional[logging.Logger] = None):
        """
        Initialize the error handler.

        Args:
            app: The ASGI application
            debug: Include internal messages (``debug_message``) in responses
            logger: Logger for error lines (default: this module's logger)
        """
        super().__init__(app)
        self.debug = debug
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = get_request_context(request)

        try:
            response = await call_next(request)
        except ApiException as e:
            if context is not None:
                context.log_error(self.logger, e)
            elif e.status_code >= 500:
                self.logger.error(f"API error: {e.message}", exc_info=True)
            else:
                self.logger.warning(f"API error: {e.message}")
            return e.to_response(debug=self.debug)
        except Exception as e:
            if context is not None:
                context.log_error(self.logger, e, status_code=500)
            else:
                self.logger.error(f"Unexpected error: {e}", exc_info=True)
            return ApiException.internal_server_error(
                f"Unexpected error: {e}",
                response_message="Internal server error",
            ).to_response(debug=self.debug)

        if context is not None:
            context.finalize(status_code=response.status_code)
        return response
