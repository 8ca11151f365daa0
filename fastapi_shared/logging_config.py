"""Structured JSON logging configuration with request ID support."""

import logging
import sys
from contextvars import ContextVar
from typing import Optional

from pythonjsonlogger.json import JsonFormatter as BaseJsonFormatter

from fastapi_shared.request_logging.payload import PAYLOAD_ATTR, payload_from_record

# Context variable for the current request ID - safe across async tasks
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Logging filter that adds request_id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add request_id attribute to the log record."""
        record.request_id = request_id_var.get()
        return True


class CustomJsonFormatter(BaseJsonFormatter):
    """JSON formatter with consistent field naming and payload expansion."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add custom fields to the JSON log record."""
        super().add_fields(log_record, record, message_dict)

        # Rename fields for consistency with log aggregators
        if "asctime" in log_record:
            log_record["timestamp"] = log_record.pop("asctime")
        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        # Flatten an attached payload; fields already on the record win
        log_record.pop(PAYLOAD_ATTR, None)
        details = payload_from_record(record).details()
        if details:
            for key, value in details.items():
                log_record.setdefault(key, value)

        # Ensure request_id is always present
        if "request_id" not in log_record:
            log_record["request_id"] = request_id_var.get()


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    logger_name: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, output human-readable format
        logger_name: If provided, configure only this logger; otherwise configure root
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level.upper())

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level.upper())

    if json_format:
        formatter = CustomJsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)

    # Prevent propagation to root logger if configuring a specific logger
    if logger_name:
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Loggers obtained here pick up the request ID once setup_logging
    has installed the filter on their handler.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
