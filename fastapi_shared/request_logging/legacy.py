"""Helpers for call sites that still log exceptions with request bodies.

Older services built a separate "exception details" object from the request,
its body and the error. ``exception_context`` produces the equivalent
RequestContext instead.
"""

import json
from typing import Any, Optional

from starlette.requests import ClientDisconnect, Request

from fastapi_shared.request_logging.context import RequestContext
from fastapi_shared.request_logging.strategies import RequestIdStrategy, UuidStrategy


def _last8(content: str) -> str:
    return content[-8:]


def obfuscate_user_data(body: Any) -> Any:
    """Mask credentials in a request body mapping; other values pass through."""
    if not isinstance(body, dict):
        return body

    obfuscated = {}
    for key, value in body.items():
        lowered = str(key).lower()
        content = f"{value}"
        if lowered == "password":
            if isinstance(value, str) and content:
                obfuscated[key] = f"***({len(content)})"
            else:
                obfuscated[key] = value
        elif lowered == "authorization":
            if content.startswith("Bearer "):
                obfuscated[key] = f"Bearer ***{_last8(content)}({len(content)})"
            else:
                obfuscated[key] = f"***{_last8(content)}({len(content)})"
        elif lowered == "id_token":
            obfuscated[key] = f"***{_last8(content)}({len(content)})"
        else:
            obfuscated[key] = value
    return obfuscated


def exception_context(
    request: Request,
    request_body: Any,
    error: BaseException,
    request_id_strategy: Optional[RequestIdStrategy] = None,
) -> RequestContext:
    """Build a finalized RequestContext describing a failed request."""
    context = RequestContext(
        request,
        request_id_strategy=request_id_strategy or UuidStrategy(),
    )
    if request_body is not None:
        context.add_field("request_body", obfuscate_user_data(request_body))
    context.finalize(error=error)
    return context


async def read_json_or_body(request: Request) -> Any:
    """Return the JSON body, else the text body, else None (POST/PUT only)."""
    if request.method.upper() not in ("POST", "PUT"):
        return None
    try:
        raw = await request.body()
    except (ClientDisconnect, RuntimeError):
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")
