"""Progressive request context for structured logging."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from starlette.requests import Request

from fastapi_shared.errors import ApiException
from fastapi_shared.request_logging.payload import LogPayload
from fastapi_shared.request_logging.strategies import (
    RequestIdStrategy,
    SessionTrackingStrategy,
    UserIdStrategy,
)

# Headers that are safe to include in logs
SAFE_HEADERS_TO_LOG = frozenset(
    {"user-agent", "host", "x-forwarded-for", "x-cloud-trace-context"}
)


class RequestContext:
    """
    Per-request record that is built once and enriched while the request runs.

    Strategies execute in the constructor, so a context is ready to log as
    soon as it exists. Handlers add domain fields with ``add_field`` and the
    outcome is recorded once with ``finalize``.

    Custom fields are emitted last by ``to_json`` and silently replace any
    standard field with the same name (``request_id``, ``status_code``, ...).
    This lets callers override computed values, but it also means a careless
    key such as ``"method"`` hides the real HTTP method.

    Example:
        context = RequestContext(
            request,
            request_id_strategy=GCloudTraceStrategy(),
            session_strategy=AppCheckSessionStrategy(),
            user_id_strategy=JwtUserIdStrategy(),
        )
        context.add_field("cache_hit", True)
        context.log_success(logger)
    """

    def __init__(
        self,
        request: Request,
        request_id_strategy: RequestIdStrategy,
        session_strategy: Optional[SessionTrackingStrategy] = None,
        user_id_strategy: Optional[UserIdStrategy] = None,
    ):
        self.started_at = datetime.now(timezone.utc)
        self._start = time.perf_counter()

        self.request_id: str = request_id_strategy.generate_request_id(request)
        trace_info = request_id_strategy.extract_trace_info(request)
        self.trace_id: Optional[str] = trace_info.trace_id if trace_info else None
        self.span_id: Optional[str] = trace_info.span_id if trace_info else None

        self.session_hash: Optional[str] = None
        self.client_platform: Optional[str] = None
        self.app_id: Optional[str] = None
        if session_strategy is not None:
            session_info = session_strategy.extract_session_info(request)
            self.session_hash = session_info.session_hash
            self.client_platform = session_info.client_platform
            self.app_id = session_info.app_id

        self.user_id: Optional[str] = None
        if user_id_strategy is not None:
            self.user_id = user_id_strategy.extract_user_id(request)

        self.method: str = request.method.upper()
        self.endpoint: str = _endpoint(request)
        self.remote_address: str = request.client.host if request.client else "unknown"
        self.safe_headers: dict[str, str] = {
            key: value
            for key, value in request.headers.items()
            if key.lower() in SAFE_HEADERS_TO_LOG
        }

        self._custom_fields: dict[str, Any] = {}

        # Raw request body, kept only for error diagnostics
        self.captured_body: Optional[str] = None

        # Outcome, set by finalize()
        self.status_code: Optional[int] = None
        self.duration_ms: Optional[int] = None
        self.error_type: Optional[str] = None
        self.error_message: Optional[str] = None
        self.error_object: Optional[BaseException] = None

    @property
    def custom_fields(self) -> dict[str, Any]:
        return dict(self._custom_fields)

    @property
    def is_finalized(self) -> bool:
        return self.status_code is not None

    def add_field(self, key: str, value: Any) -> None:
        """Add or replace a custom field (last write wins)."""
        self._custom_fields[key] = value

    def finalize(
        self,
        status_code: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """
        Record the outcome of the request.

        Can be called more than once; the last call wins.

        Args:
            status_code: HTTP status of the response. Defaults to the error's
                status (500 for non-API errors), or 200 without an error.
            error: The exception that ended the request, if any
        """
        self.duration_ms = max(0, int((time.perf_counter() - self._start) * 1000))

        if error is None:
            self.error_object = None
            self.error_type = None
            self.error_message = None
            self.status_code = status_code if status_code is not None else 200
            return

        self.error_object = error
        if isinstance(error, ApiException):
            self.error_type = error.error_type
            self.error_message = error.message
            default_status = error.status_code
        else:
            self.error_type = type(error).__name__
            self.error_message = str(error)
            default_status = 500
        self.status_code = status_code if status_code is not None else default_status

    def to_json(self) -> dict[str, Any]:
        """Structured log representation; optional fields only when set."""
        data: dict[str, Any] = {
            "request_id": self.request_id,
            "timestamp": self.started_at.isoformat(),
            "method": self.method,
            "endpoint": self.endpoint,
            "remote_address": self.remote_address,
            "request_headers": dict(self.safe_headers),
        }

        optional = {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "client_platform": self.client_platform,
            "session_hash": self.session_hash,
            "app_id": self.app_id,
            "user_id": self.user_id,
            "request_body": self.captured_body,
            "status_code": self.status_code,
            "duration_ms": self.duration_ms,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }
        data.update({key: value for key, value in optional.items() if value is not None})

        data.update(self._custom_fields)
        return data

    def __str__(self) -> str:
        if self.error_type is not None:
            return (
                f"[{self.status_code}] {self.method} {self.endpoint} - "
                f"{self.error_type}: {self.error_message}"
            )
        if self.status_code is not None and self.duration_ms is not None:
            return f"[{self.status_code}] {self.method} {self.endpoint} ({self.duration_ms}ms)"
        return f"{self.method} {self.endpoint}"

    def __repr__(self) -> str:
        return f"RequestContext({self.request_id!r}, {self.method} {self.endpoint})"

    # === Logging helpers ===

    def log_success(self, logger: logging.Logger, status_code: int = 200) -> None:
        """Log the request at INFO, finalizing it first if needed."""
        if not self.is_finalized:
            self.finalize(status_code=status_code)
        logger.info(str(self), extra={"payload": LogPayload.for_context(self)})

    def log_error(
        self,
        logger: logging.Logger,
        error: BaseException,
        status_code: Optional[int] = None,
    ) -> None:
        """
        Log a failed request, finalizing it with the error first if needed.

        Client errors (4xx) are logged at WARNING without a traceback; server
        errors (5xx) at ERROR with one.
        """
        if status_code is None:
            status_code = error.status_code if isinstance(error, ApiException) else 500

        if not self.is_finalized or self.error_object is None:
            self.finalize(status_code=status_code, error=error)

        extra = {"payload": LogPayload.for_context(self)}
        if status_code >= 500:
            logger.error(
                str(self),
                exc_info=(type(error), error, error.__traceback__),
                extra=extra,
            )
        else:
            logger.warning(str(self), extra=extra)

    def log(self, logger: logging.Logger, level: int) -> None:
        """Log the context at an arbitrary level."""
        logger.log(level, str(self), extra={"payload": LogPayload.for_context(self)})


def _endpoint(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path
