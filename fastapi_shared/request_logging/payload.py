"""Loggable payloads attached to log records.

The caller picks the variant when logging, so handlers and formatters never
have to guess what an attached object is:

    logger.info(
        "Cache refreshed",
        extra={"payload": LogPayload.for_context(request_context)},
    )
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from fastapi_shared.request_logging.context import RequestContext

# Attribute name on logging.LogRecord (set through ``extra``)
PAYLOAD_ATTR = "payload"


class PayloadKind(str, Enum):
    """Variants of a loggable payload."""

    CONTEXT = "context"
    MESSAGE = "message"
    NONE = "none"


@dataclass(frozen=True)
class LogPayload:
    """Tagged union of a request context, a raw message, or nothing."""

    kind: PayloadKind
    context: Optional["RequestContext"] = None
    text: Optional[str] = None

    @classmethod
    def for_context(cls, context: "RequestContext") -> "LogPayload":
        return cls(PayloadKind.CONTEXT, context=context)

    @classmethod
    def for_message(cls, text: str) -> "LogPayload":
        return cls(PayloadKind.MESSAGE, text=text)

    @classmethod
    def none(cls) -> "LogPayload":
        return cls(PayloadKind.NONE)

    def details(self) -> Optional[dict]:
        """Fields this payload contributes to a structured log event."""
        if self.kind is PayloadKind.CONTEXT and self.context is not None:
            return self.context.to_json()
        if self.kind is PayloadKind.MESSAGE:
            return {"object": self.text}
        return None


def payload_from_record(record: logging.LogRecord) -> LogPayload:
    """Return the payload attached to a record, or the empty variant."""
    payload = getattr(record, PAYLOAD_ATTR, None)
    if isinstance(payload, LogPayload):
        return payload
    return LogPayload.none()
