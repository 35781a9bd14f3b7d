"""Authentication package for userauth-gateway.

Path matching, referer resolution, negotiated redirects, session access and
the login / callback / logout flows.
"""

from userauth_gateway.auth.config import (
    UserAuthConfig,
    build_user_auth_config,
)
from userauth_gateway.auth.errors import ConfigurationError
from userauth_gateway.auth.flows import login_callback_flow, login_flow, logout_flow
from userauth_gateway.auth.matching import MatchKind, MatchSpec, compile_path_predicate
from userauth_gateway.auth.referer import resolve_referer
from userauth_gateway.auth.responses import emit_redirect, preferred_type
from userauth_gateway.auth.session import PENDING_REFERER_KEY, SessionStore
from userauth_gateway.auth.ticket import TicketProvider

__all__ = [
    # Config
    "UserAuthConfig",
    "build_user_auth_config",
    "ConfigurationError",
    # Matching
    "MatchKind",
    "MatchSpec",
    "compile_path_predicate",
    # Referer / responses
    "resolve_referer",
    "emit_redirect",
    "preferred_type",
    # Session
    "SessionStore",
    "PENDING_REFERER_KEY",
    # Flows
    "login_flow",
    "login_callback_flow",
    "logout_flow",
    # Provider
    "TicketProvider",
]
