"""Shipping of structured log events to a remote collector."""

import asyncio
import json
import logging
import traceback
from datetime import date, datetime
from typing import Any, Optional

from fastapi_shared.config import get_settings
from fastapi_shared.request_logging.payload import payload_from_record
from fastapi_shared.request_logging.sinks import LogApiWrapper, SolarWindsApiWrapper

logger = logging.getLogger(__name__)

MAX_STACK_TRACE_LINES = 20

# Loggers whose records are never shipped (they report on shipping itself)
UNSHIPPED_LOGGERS = ("fastapi_shared.request_logging.sinks",)


class LogHandler:
    """
    Turns log records into JSON events and sends them to a LogApiWrapper.

    Create one at startup and hand it to whatever needs it (or use
    init_log_handler for an ambient instance).

    Args:
        wrapper: Remote collector client
        system: Service name placed in every event, e.g. ``places_api``
        developer_mode: Do not ship events (console logging only)
        force_remote: Ship events even in developer mode
    """

    def __init__(
        self,
        wrapper: LogApiWrapper,
        system: str,
        developer_mode: bool = False,
        force_remote: bool = False,
    ):
        self.wrapper = wrapper
        self.system = system
        self.developer_mode = developer_mode
        self.force_remote = force_remote

    def build_event(
        self,
        record: logging.LogRecord,
        developer_mode: Optional[bool] = None,
    ) -> dict:
        """Build the event dict for a record."""
        is_dev = self.developer_mode if developer_mode is None else developer_mode

        event: dict[str, Any] = {
            "system": self.system,
            "type": _event_type(record),
            "logger": record.name,
            "message": record.getMessage(),
            "environment": "debug" if is_dev else "release",
        }

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            event["error"] = str(error)
            if error.__traceback__ is not None:
                event["stack_trace"] = _reduced_stack_trace(error)
                location = _error_location(error)
                if location:
                    event["error_location"] = location

        details = payload_from_record(record).details()
        if details:
            event.update(details)
        return event

    def convert_object_to_json(self, data: dict) -> str:
        """Serialize an event, replacing values JSON cannot represent."""
        return json.dumps({str(key): _to_json_value(value) for key, value in data.items()})

    def render(
        self,
        record: logging.LogRecord,
        developer_mode: Optional[bool] = None,
    ) -> Optional[str]:
        """JSON body to ship for a record, or None when shipping is disabled."""
        is_dev = self.developer_mode if developer_mode is None else developer_mode
        if is_dev and not self.force_remote:
            return None
        return self.convert_object_to_json(self.build_event(record, is_dev))

    async def handle(
        self,
        record: logging.LogRecord,
        developer_mode: Optional[bool] = None,
    ) -> None:
        """Ship a record to the remote collector."""
        body = self.render(record, developer_mode)
        if body is not None:
            await self.wrapper.track_event(body)


class RemoteLogHandler(logging.Handler):
    """
    logging.Handler that forwards records to a LogHandler without blocking.

    Inside an event loop each record is rendered immediately and delivered by
    a background task; outside a loop (including worker threads) it is sent
    with the wrapper's blocking ``track_event_sync``.
    Call ``drain`` at shutdown to wait for deliveries still in flight.
    """

    def __init__(self, log_handler: LogHandler, level: int = logging.INFO):
        super().__init__(level)
        self.log_handler = log_handler
        self._pending: set[asyncio.Task] = set()

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(UNSHIPPED_LOGGERS):
            return
        try:
            body = self.log_handler.render(record)
        except Exception:
            self.handleError(record)
            return
        if body is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        # Plain threads, including asyncio.to_thread workers, have no loop
        if loop is None:
            try:
                self.log_handler.wrapper.track_event_sync(body)
            except Exception:
                self.handleError(record)
            return

        task = loop.create_task(self._deliver(body, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, body: str, record: logging.LogRecord) -> None:
        try:
            await self.log_handler.wrapper.track_event(body)
        except Exception:
            self.handleError(record)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all scheduled deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _event_type(record: logging.LogRecord) -> str:
    if record.levelno >= logging.ERROR:
        return "ERROR"
    if record.levelno == logging.WARNING:
        return "WARNING"
    return "INFO"


def _reduced_stack_trace(error: BaseException) -> list[str]:
    """Last lines of the formatted traceback (the raise site is at the bottom)."""
    formatted = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    lines = [line for line in formatted.split("\n") if line.strip()]
    return lines[-MAX_STACK_TRACE_LINES:]


def _error_location(error: BaseException) -> Optional[str]:
    """``file:line`` of the innermost frame of the traceback."""
    frames = traceback.extract_tb(error.__traceback__)
    if not frames:
        return None
    innermost = frames[-1]
    return f"{innermost.filename}:{innermost.lineno}"


def _to_json_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json_value(item) for item in value]
    if callable(value) and not isinstance(value, type):
        return "[Closure]"
    try:
        cls = type(value)
        if cls.__str__ is object.__str__ and cls.__repr__ is object.__repr__:
            return f"[unable to convert to json]: {cls.__name__}"
        return str(value)
    except Exception:
        return f"[unable to convert to json]: {type(value).__name__}"


# Ambient instance, managed explicitly at startup/shutdown
_log_handler: Optional[LogHandler] = None
_remote_handler: Optional[RemoteLogHandler] = None


def init_log_handler(
    wrapper: Optional[LogApiWrapper] = None,
    system: Optional[str] = None,
    developer_mode: Optional[bool] = None,
    force_remote: Optional[bool] = None,
    logger_name: Optional[str] = None,
) -> LogHandler:
    """
    Create the ambient LogHandler and attach it to a logger. Called at app startup.

    Unset arguments come from Settings; without a wrapper a
    SolarWindsApiWrapper is built from SOLARWINDS_API_TOKEN/SOLARWINDS_REGION.
    """
    global _log_handler, _remote_handler
    settings = get_settings()

    if _log_handler is not None:
        raise RuntimeError("Log handler already initialized; call shutdown_log_handler() first")

    if wrapper is None:
        wrapper = SolarWindsApiWrapper(
            token=settings.solarwinds_api_token,
            region=settings.solarwinds_region,
            timeout=settings.log_sink_timeout,
        )

    _log_handler = LogHandler(
        wrapper=wrapper,
        system=system if system is not None else settings.system_name,
        developer_mode=settings.developer_mode if developer_mode is None else developer_mode,
        force_remote=settings.force_remote_logging if force_remote is None else force_remote,
    )
    _remote_handler = RemoteLogHandler(_log_handler)
    logging.getLogger(logger_name).addHandler(_remote_handler)

    logger.info(
        "Remote log handler initialized",
        extra={"sink": wrapper.name, "system": _log_handler.system},
    )
    return _log_handler


async def shutdown_log_handler(logger_name: Optional[str] = None) -> None:
    """Detach the ambient handler, flush pending events and close the sink."""
    global _log_handler, _remote_handler
    if _remote_handler is not None:
        logging.getLogger(logger_name).removeHandler(_remote_handler)
        await _remote_handler.drain()
    if _log_handler is not None:
        await _log_handler.wrapper.aclose()
        logger.info("Remote log handler closed")
    _log_handler = None
    _remote_handler = None


def get_log_handler() -> LogHandler:
    """Get the ambient LogHandler; init_log_handler must have been called."""
    if _log_handler is None:
        raise RuntimeError("Log handler not initialized; call init_log_handler() at startup")
    return _log_handler
