"""Request ID middleware.

Echoes a well-formed inbound ``X-Request-Id`` or mints a new one, and exposes
it on ``request.state.request_id`` for log records.
"""

from __future__ import annotations

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-Id"

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def sanitize_request_id(value: str | None) -> str:
    """Return ``value`` if it is a safe identifier, else a fresh UUID."""
    if value and _REQUEST_ID_RE.match(value):
        return value
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = sanitize_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
