"""Login, login-callback and logout flows.

Login flow:

1. An unauthenticated user hits a protected path and is sent to
   ``$login_path?redirect=$current_url`` by the gate.
2. ``$login_path`` remembers the referer in the session and redirects to the
   URL built by ``login_url_formatter``.
3. The provider sends the user back to ``$login_callback_path``, where
   ``get_user`` resolves the user and ``login_callback`` may transform it.
4. The user is stored under ``session[user_field]`` and redirected to the
   remembered referer.
5. ``$logout_path`` runs ``logout_callback``, clears the user and redirects
   back.

Errors raised by ``get_user`` / ``login_callback`` / ``logout_callback`` in
these flows are not caught here.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

from fastapi import Request
from starlette.responses import Response

from userauth_gateway.auth.config import UserAuthConfig
from userauth_gateway.auth.referer import referer_for
from userauth_gateway.auth.responses import emit_redirect
from userauth_gateway.auth.session import PENDING_REFERER_KEY, SessionStore

log = logging.getLogger("userauth-gateway.flows")


async def call_hook(fn, *args) -> Any:
    """Call a user hook, awaiting the result when it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def unpack_login_result(result: Any) -> tuple[Any, Optional[str]]:
    if isinstance(result, (tuple, list)) and len(result) == 2:
        return result[0], result[1]
    raise TypeError(
        f"login_callback must return (user, redirect_url), got {type(result).__name__}"
    )


def _first_forwarded(request: Request, header: str) -> Optional[str]:
    value = request.headers.get(header)
    if not value:
        return None
    return value.split(",")[0].strip() or None


def build_callback_url(request: Request, config: UserAuthConfig) -> str:
    """Absolute URL of the login callback endpoint."""
    host = config.host
    protocol = config.protocol
    if config.trust_proxy:
        host = host or _first_forwarded(request, "x-forwarded-host")
        protocol = protocol or _first_forwarded(request, "x-forwarded-proto")
    host = host or request.headers.get("host") or request.url.netloc
    protocol = protocol or request.url.scheme
    return f"{protocol}://{host}{config.login_callback_path}"


async def login_flow(
    request: Request, session: Optional[SessionStore], config: UserAuthConfig
) -> Response:
    """Remember where to return to and redirect to the login provider."""
    if session is not None:
        referer = referer_for(request, config.login_path, config.root_path)
        session.set(PENDING_REFERER_KEY, referer)
        log.debug("set login referer into session: %s", referer)

    callback_url = build_callback_url(request, config)
    login_url = await call_hook(
        config.login_url_formatter, callback_url, config.root_path, request
    )
    log.debug("login redirect to login url: %s", login_url)
    return emit_redirect(request, login_url)


async def login_callback_flow(
    request: Request, session: SessionStore, config: UserAuthConfig
) -> Response:
    """Resolve the user returned by the provider and store it."""
    pending = session.pop(PENDING_REFERER_KEY)
    log.debug("login referer in session: %r", pending)
    referer = pending or config.root_path

    if session.get(config.user_field):
        # already logged in, e.g. a repeated callback hit
        return emit_redirect(request, referer)

    user = await call_hook(config.get_user, request)
    if not user:
        log.info("Login callback resolved no user")
        return emit_redirect(request, referer)

    result = await call_hook(config.login_callback, request, user)
    login_user, redirect_url = unpack_login_result(result)
    session.set(config.user_field, login_user)
    log.info("User logged in via %s", config.login_callback_path)
    return emit_redirect(request, redirect_url or referer)


async def logout_flow(
    request: Request, session: SessionStore, config: UserAuthConfig
) -> Response:
    """Run the logout hook, clear the session user and redirect back."""
    referer = referer_for(request, config.logout_path, config.root_path)
    user = session.get(config.user_field)
    if not user:
        return emit_redirect(request, referer)

    redirect_url = await call_hook(config.logout_callback, request, user)
    session.delete(config.user_field)
    log.info("User logged out")
    return emit_redirect(request, redirect_url or referer)
