"""Pluggable strategies that pull correlation data out of a request.

Strategies run synchronously while a RequestContext is built. They must not
raise for missing or malformed input: absent data is reported as ``None``.
"""

import hashlib
import logging
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import jwt
from starlette.requests import Request

logger = logging.getLogger(__name__)

APP_CHECK_HEADER = "X-Firebase-AppCheck"
CLOUD_TRACE_HEADER = "X-Cloud-Trace-Context"
AUTHORIZATION_HEADER = "Authorization"

_PLATFORM_PATTERN = re.compile(r":(android|ios|web):")


@dataclass(frozen=True)
class TraceInfo:
    """Distributed tracing identifiers."""

    trace_id: Optional[str]
    span_id: Optional[str] = None


@dataclass(frozen=True)
class SessionInfo:
    """Session correlation data extracted from a request."""

    session_hash: Optional[str] = None
    client_platform: Optional[str] = None
    app_id: Optional[str] = None

    @classmethod
    def empty(cls) -> "SessionInfo":
        return cls()


class RequestIdStrategy(ABC):
    """Strategy for generating or extracting request IDs."""

    @abstractmethod
    def generate_request_id(self, request: Request) -> str:
        """Return an ID unique to this request, suitable for log correlation."""

    def extract_trace_info(self, request: Request) -> Optional[TraceInfo]:
        """Return trace/span IDs, or None when tracing data is unavailable."""
        return None


class SessionTrackingStrategy(ABC):
    """Strategy for extracting session tracking information."""

    @abstractmethod
    def extract_session_info(self, request: Request) -> SessionInfo:
        """Return session hash, client platform and app ID (each may be None)."""


class UserIdStrategy(ABC):
    """Strategy for extracting the user ID."""

    @abstractmethod
    def extract_user_id(self, request: Request) -> Optional[str]:
        """Return the user identifier, or None if unauthenticated or unknown."""


def _unverified_subject(token: str) -> Optional[str]:
    """Read the ``sub`` claim of a JWT without checking its signature."""
    if token.count(".") != 2:
        return None
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) else None


class UuidStrategy(RequestIdStrategy):
    """Random UUID4 request IDs, no tracing information.

    Use outside Google Cloud or whenever infrastructure headers are absent.
    """

    def generate_request_id(self, request: Request) -> str:
        return str(uuid.uuid4())


class GCloudTraceStrategy(RequestIdStrategy):
    """
    Request IDs from the Cloud Run ``X-Cloud-Trace-Context`` header.

    Header format: ``TRACE_ID/SPAN_ID;o=TRACE_TRUE``, for example
    ``105445aa7843bc8bf206b12000100000/1;o=1``.

    Falls back to a UUID (with a warning) when the header is missing, which
    usually means the service is not running behind Cloud Run.
    """

    def __init__(self, fallback: Optional[RequestIdStrategy] = None):
        self.fallback = fallback or UuidStrategy()

    def generate_request_id(self, request: Request) -> str:
        trace_context = request.headers.get(CLOUD_TRACE_HEADER)
        if not trace_context:
            logger.warning(
                "X-Cloud-Trace-Context header not found. Falling back to UUID generation. "
                "Deploy behind Google Cloud Run or use UuidStrategy outside GCP."
            )
            return self.fallback.generate_request_id(request)
        return trace_context.split("/")[0]

    def extract_trace_info(self, request: Request) -> Optional[TraceInfo]:
        trace_context = request.headers.get(CLOUD_TRACE_HEADER)
        if not trace_context:
            return None

        parts = trace_context.split("/")
        span_id = parts[1].split(";")[0] if len(parts) > 1 else None
        return TraceInfo(trace_id=parts[0], span_id=span_id or None)


class AppCheckSessionStrategy(SessionTrackingStrategy):
    """
    Session data derived from the Firebase App Check token.

    - session_hash: MD5 of the raw token. App Check tokens are reused across
      calls for up to an hour, so the hash correlates a client session across
      APIs without logging the token itself.
    - app_id: ``sub`` claim of the token, e.g. ``1:123456789:android:abc123``.
    - client_platform: ``android``, ``ios`` or ``web`` taken from the app ID.

    The token is decoded without verification; AppCheckMiddleware verifies it.
    """

    def extract_session_info(self, request: Request) -> SessionInfo:
        token = request.headers.get(APP_CHECK_HEADER)
        if not token:
            return SessionInfo.empty()

        session_hash = hashlib.md5(token.encode("utf-8"), usedforsecurity=False).hexdigest()

        app_id = _unverified_subject(token)
        client_platform = None
        if app_id:
            match = _PLATFORM_PATTERN.search(app_id)
            if match:
                client_platform = match.group(1)

        return SessionInfo(
            session_hash=session_hash,
            client_platform=client_platform,
            app_id=app_id,
        )


class JwtUserIdStrategy(UserIdStrategy):
    """
    User ID from the ``sub`` claim of an ``Authorization: Bearer`` JWT.

    WARNING: the token is decoded WITHOUT signature verification. The value is
    meant for logs only; place an authentication middleware that verifies the
    token in front of this one and never authorize on it.
    """

    def extract_user_id(self, request: Request) -> Optional[str]:
        auth_header = request.headers.get(AUTHORIZATION_HEADER)
        if not auth_header or not auth_header.startswith("Bearer "):
            return None
        return _unverified_subject(auth_header[len("Bearer "):])
