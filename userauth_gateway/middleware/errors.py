"""JSON error boundary.

Runs inside ``SessionMiddleware`` so session changes made before a failure,
such as the consumed pending referer on ``$login_callback_path``, are still
written to the response cookie.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from userauth_gateway.middleware.gate import current_url

log = logging.getLogger("userauth-gateway.errors")


async def render_error(request: Request, exc: Exception) -> JSONResponse:
    """Render an unhandled error, including login/logout hook failures."""
    log.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc),
            "message": f"{request.method} {current_url(request)}",
        },
    )


class ErrorBoundaryMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await render_error(request, exc)
