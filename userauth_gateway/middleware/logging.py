"""Structured request logging.

One ``"request"`` record per request, with the fields in ``extra`` so a JSON
formatter can pick them up.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

log = logging.getLogger("userauth-gateway.access")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, latency and whether a session user exists."""

    def __init__(self, app, user_field: str = "user"):
        super().__init__(app)
        self.user_field = user_field

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        # session is read after the gate ran, so a fresh login shows up here
        session = request.scope.get("session")
        log.info(
            "request",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "authenticated": bool(session and session.get(self.user_field)),
                "redirect_to": response.headers.get("location"),
            },
        )
        return response
