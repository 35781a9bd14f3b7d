"""User authentication gate middleware.

Decides per request whether authentication is required and dispatches to the
login, login-callback and logout flows. Order of evaluation:

1. No session at all: protected paths go to the login flow, others pass.
2. Reserved paths: login, login callback, logout.
3. Unprotected paths pass.
4. A session user that passes ``login_check`` passes.
5. Otherwise ``get_user`` is tried directly. Its errors are logged and
   treated as "no user", which redirects to ``$login_path?redirect=...``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from urllib.parse import quote

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from userauth_gateway.auth.config import UserAuthConfig, build_user_auth_config
from userauth_gateway.auth.errors import ConfigurationError
from userauth_gateway.auth.flows import (
    call_hook,
    login_callback_flow,
    login_flow,
    logout_flow,
    unpack_login_result,
)
from userauth_gateway.auth.responses import emit_redirect
from userauth_gateway.auth.session import SessionStore

log = logging.getLogger("userauth-gateway.gate")

# RFC 3986 mark characters left unescaped in continuation URLs
_COMPONENT_SAFE = "!*'()"


def encode_continuation(url: str) -> str:
    """Percent-encode a URL for use as a query value.

    Falls back to the raw URL when it cannot be encoded (lone surrogates).
    """
    try:
        return quote(url, safe=_COMPONENT_SAFE)
    except UnicodeEncodeError:
        return url


def current_url(request: Request) -> str:
    """Path plus query string of the request, as sent by the client.

    Uses the undecoded ``raw_path`` when the server provides one so that
    escapes such as ``%3F`` inside a segment survive the login round trip.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        url = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        url = request.url.path
    query = request.scope.get("query_string", b"")
    if query:
        url += "?" + query.decode("latin-1")
    return url


class UserAuthMiddleware(BaseHTTPMiddleware):
    """Session-backed login gate.

    Requires Starlette's ``SessionMiddleware`` to run outside of it for the
    session-dependent flows. Without a session, protected paths always go to
    the login provider.
    """

    def __init__(self, app, config: Optional[UserAuthConfig] = None, **options: Any):
        """Initialize the gate.

        Args:
            app: ASGI application
            config: Prebuilt configuration
            **options: Keyword options for ``build_user_auth_config`` when no
                config is given
        """
        super().__init__(app)
        if config is None:
            config = build_user_auth_config(**options)
        elif options:
            raise ConfigurationError("pass either config or options, not both")
        self.config = config

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        config = self.config
        path = request.url.path
        login_required = bool(config.requires_auth(path, request))
        session = SessionStore.from_request(request)

        log.debug(
            "url: %s, path: %s, login path: %s, session exists: %s, login required: %s",
            request.url,
            path,
            config.login_path,
            session is not None,
            login_required,
        )

        if session is None:
            if not login_required:
                return await call_next(request)
            log.debug("no session, redirect to login provider")
            return await login_flow(request, None, config)

        if path == config.login_path:
            log.debug("match login path")
            return await login_flow(request, session, config)

        if path == config.login_callback_path:
            log.debug("match login callback path")
            return await login_callback_flow(request, session, config)

        if path == config.logout_path:
            log.debug("match logout path")
            return await logout_flow(request, session, config)

        if not login_required:
            log.debug("ignore %s", path)
            return await call_next(request)

        if session.get(config.user_field) and await call_hook(
            config.login_check, request
        ):
            log.debug("already logged in")
            return await call_next(request)

        user = await self._resolve_user(request)
        if not user:
            log.debug("can not get user")

            async def login_redirect() -> Response:
                login_url = (
                    config.login_path
                    + "?redirect="
                    + encode_continuation(current_url(request))
                )
                log.debug("redirect to %s", login_url)
                return emit_redirect(request, login_url)

            return await call_hook(
                config.redirect_handler, request, login_redirect, call_next
            )

        log.debug("got user directly")
        result = await call_hook(config.login_callback, request, user)
        login_user, redirect_url = unpack_login_result(result)
        session.set(config.user_field, login_user)
        if redirect_url:
            return emit_redirect(request, redirect_url)
        return await call_next(request)

    async def _resolve_user(self, request: Request) -> Any:
        try:
            return await call_hook(self.config.get_user, request)
        except Exception as e:
            log.exception("get_user failed during direct resolution: %s", e)
            return None
