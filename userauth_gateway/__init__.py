"""User Auth Gateway.

Session login gate for Starlette / FastAPI applications that delegates
authentication to an external login provider.
"""

from userauth_gateway.auth import (
    ConfigurationError,
    SessionStore,
    TicketProvider,
    UserAuthConfig,
    build_user_auth_config,
    compile_path_predicate,
    emit_redirect,
    resolve_referer,
)
from userauth_gateway.middleware.gate import UserAuthMiddleware

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "SessionStore",
    "TicketProvider",
    "UserAuthConfig",
    "UserAuthMiddleware",
    "build_user_auth_config",
    "compile_path_predicate",
    "emit_redirect",
    "resolve_referer",
]
