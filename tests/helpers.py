"""Test doubles and request builders shared across test modules."""

import json
from typing import Optional

import jwt
from starlette.requests import Request

from fastapi_shared.request_logging.sinks import LogApiWrapper

JWT_TEST_SECRET = "unit-test-secret-key-with-32-bytes!"


def make_request(
    method: str = "GET",
    path: str = "/test",
    headers: Optional[dict] = None,
    query_string: str = "",
    client: Optional[tuple] = ("10.0.0.1", 54321),
    body: bytes = b"",
) -> Request:
    """Build a Starlette request without running an app."""
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "query_string": query_string.encode("latin-1"),
        "headers": [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in (headers or {}).items()
        ],
        "client": client,
        "server": ("testserver", 80),
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


def make_jwt(claims: dict) -> str:
    """Signed JWT for extraction tests (signature is never checked)."""
    return jwt.encode(claims, JWT_TEST_SECRET, algorithm="HS256")


class RecordingWrapper(LogApiWrapper):
    """LogApiWrapper that keeps shipped events in memory."""

    name = "recording"

    def __init__(self):
        self.events: list[dict] = []
        self.closed = False

    async def track_event(self, body: str) -> None:
        self.events.append(json.loads(body))

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
