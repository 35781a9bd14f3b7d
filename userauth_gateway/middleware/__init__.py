"""Middleware for userauth-gateway."""

from userauth_gateway.middleware.errors import ErrorBoundaryMiddleware
from userauth_gateway.middleware.gate import UserAuthMiddleware
from userauth_gateway.middleware.logging import StructuredLoggingMiddleware
from userauth_gateway.middleware.request_id import RequestIdMiddleware

__all__ = [
    "UserAuthMiddleware",
    "ErrorBoundaryMiddleware",
    "StructuredLoggingMiddleware",
    "RequestIdMiddleware",
]
