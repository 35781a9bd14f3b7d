"""ASGI entrypoint for the User Auth Gateway.

Kept separate so importing userauth_gateway.main has no side effects.
Use this in uvicorn:  userauth_gateway.asgi:app
"""

from __future__ import annotations

from userauth_gateway.main import build_app

app = build_app()
