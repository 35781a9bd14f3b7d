"""User Auth Gateway - reference FastAPI application.

Wires the gate into a host application: signed cookie sessions, the ticket
login provider, request ids, structured access logs and a JSON error
boundary for failures the gate lets through.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware

from userauth_gateway.auth.config import build_user_auth_config
from userauth_gateway.auth.ticket import TicketProvider
from userauth_gateway.middleware.errors import ErrorBoundaryMiddleware, render_error
from userauth_gateway.middleware.gate import UserAuthMiddleware, current_url
from userauth_gateway.middleware.logging import StructuredLoggingMiddleware
from userauth_gateway.middleware.request_id import RequestIdMiddleware
from userauth_gateway.settings import GatewaySettings, get_settings

SERVICE_NAME = "userauth-gateway"
VERSION = "0.1.0"

log = logging.getLogger(SERVICE_NAME)


def build_app(
    settings: Optional[GatewaySettings] = None,
    *,
    with_session: bool = True,
    **gate_options: Any,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Args:
        settings: Application settings (environment-derived if omitted)
        with_session: Install the cookie session middleware
        **gate_options: Gate options overriding the settings-derived ones,
            e.g. ``get_user`` / ``login_url_formatter`` for a custom provider
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    config_errors = settings.validate()
    if config_errors:
        error_msg = "; ".join(config_errors)
        log.error("Configuration validation failed: %s", error_msg)
        raise RuntimeError(f"Configuration validation failed: {error_msg}")

    options: dict[str, Any] = {
        "match": settings.match,
        "ignore": settings.ignore,
        "root_path": settings.root_path,
        "trust_proxy": settings.trust_proxy,
    }
    if settings.provider_enabled:
        provider = TicketProvider(
            settings.provider_login_url, settings.provider_userinfo_url
        )
        options["get_user"] = provider.get_user
        options["login_url_formatter"] = provider.login_url_formatter
    options.update(gate_options)

    # raises ConfigurationError before any request is served
    gate_config = build_user_auth_config(**options)

    app = FastAPI(
        title="User Auth Gateway",
        description="Session login gate in front of an external login provider",
        version=VERSION,
    )
    app.add_exception_handler(Exception, render_error)

    # Add middleware (order matters: last added is outermost)
    app.add_middleware(UserAuthMiddleware, config=gate_config)
    app.add_middleware(ErrorBoundaryMiddleware)
    if with_session:
        app.add_middleware(
            SessionMiddleware,
            secret_key=settings.session_secret,
            session_cookie=settings.session_cookie_name,
            max_age=settings.session_ttl_seconds,
            same_site="lax",
            https_only=settings.is_prod,
        )
    app.add_middleware(StructuredLoggingMiddleware, user_field=gate_config.user_field)
    app.add_middleware(RequestIdMiddleware)

    app.state.service = SERVICE_NAME
    app.state.version = VERSION
    app.state.start_time = datetime.now(timezone.utc)
    app.state.gate_config = gate_config

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": request.app.state.service,
            "version": request.app.state.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.api_route("/{full_path:path}", methods=["GET", "POST"])
    async def echo(request: Request, full_path: str) -> dict[str, Any]:
        """Echo the session user; stands in for the protected application."""
        session = request.scope.get("session") or {}
        return {
            "user": session.get(gate_config.user_field),
            "message": f"{request.method} {current_url(request)}",
        }

    log.info("%s v%s configured", SERVICE_NAME, VERSION)
    return app
