"""Request-scoped structured logging and remote log shipping."""

from fastapi_shared.request_logging.context import SAFE_HEADERS_TO_LOG, RequestContext
from fastapi_shared.request_logging.handler import (
    LogHandler,
    RemoteLogHandler,
    get_log_handler,
    init_log_handler,
    shutdown_log_handler,
)
from fastapi_shared.request_logging.legacy import (
    exception_context,
    obfuscate_user_data,
    read_json_or_body,
)
from fastapi_shared.request_logging.payload import LogPayload, PayloadKind
from fastapi_shared.request_logging.sinks import (
    LogApiWrapper,
    PapertrailApiWrapper,
    SolarWindsApiWrapper,
)
from fastapi_shared.request_logging.strategies import (
    AppCheckSessionStrategy,
    GCloudTraceStrategy,
    JwtUserIdStrategy,
    RequestIdStrategy,
    SessionInfo,
    SessionTrackingStrategy,
    TraceInfo,
    UserIdStrategy,
    UuidStrategy,
)

__all__ = [
    "SAFE_HEADERS_TO_LOG",
    "AppCheckSessionStrategy",
    "GCloudTraceStrategy",
    "JwtUserIdStrategy",
    "LogApiWrapper",
    "LogHandler",
    "LogPayload",
    "PapertrailApiWrapper",
    "PayloadKind",
    "RemoteLogHandler",
    "RequestContext",
    "RequestIdStrategy",
    "SessionInfo",
    "SessionTrackingStrategy",
    "SolarWindsApiWrapper",
    "TraceInfo",
    "UserIdStrategy",
    "UuidStrategy",
    "exception_context",
    "get_log_handler",
    "init_log_handler",
    "obfuscate_user_data",
    "read_json_or_body",
    "shutdown_log_handler",
]
