"""Reference application settings.

Read from environment variables; the gate itself takes explicit options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

_TRUE = {"1", "true", "yes", "y", "on"}

VALID_ENVS = {
    "prod",
    "production",
    "staging",
    "dev",
    "development",
    "local",
    "test",
}


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in _TRUE


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None or not v.strip():
        return None
    return v.strip()


@dataclass(frozen=True)
class GatewaySettings:
    """Settings for the reference host application.

    Environment Variables:
        UA_ENV: Environment (prod/staging/dev/test)
        UA_SESSION_SECRET: Secret for signing session cookies
        UA_SESSION_COOKIE_NAME: Session cookie name (default: ua_session)
        UA_SESSION_TTL_SECONDS: Session TTL in seconds (default: 28800 = 8 hours)
        UA_ROOT_PATH: Application root path (default: /)
        UA_MATCH: Route pattern of paths requiring login
        UA_IGNORE: Route pattern of paths not requiring login
        UA_PROVIDER_LOGIN_URL: Login provider page
        UA_PROVIDER_USERINFO_URL: Login provider ticket validation endpoint
        UA_TRUST_PROXY: Honor X-Forwarded-Host / X-Forwarded-Proto
        UA_LOG_LEVEL: Root log level (default: INFO)
    """

    env: str = "dev"
    session_secret: str = field(default_factory=lambda: os.urandom(32).hex())
    session_secret_from_env: bool = False
    session_cookie_name: str = "ua_session"
    session_ttl_seconds: int = 28800

    root_path: str = "/"
    match: Optional[str] = None
    ignore: Optional[str] = None

    provider_login_url: Optional[str] = None
    provider_userinfo_url: Optional[str] = None

    trust_proxy: bool = False
    log_level: str = "INFO"

    @property
    def env_lower(self) -> str:
        return (self.env or "dev").strip().lower()

    @property
    def is_prod(self) -> bool:
        return self.env_lower in ("prod", "production")

    @property
    def is_prod_like(self) -> bool:
        return self.env_lower in ("prod", "production", "staging")

    @property
    def provider_enabled(self) -> bool:
        return bool(self.provider_login_url and self.provider_userinfo_url)

    def validate(self) -> list[str]:
        errors: list[str] = []

        if self.env_lower not in VALID_ENVS:
            errors.append(
                f"Invalid UA_ENV='{self.env}'. Valid values: {', '.join(sorted(VALID_ENVS))}."
            )

        if self.is_prod_like and not self.session_secret_from_env:
            errors.append("UA_SESSION_SECRET must be set in production/staging")

        if self.is_prod_like and not self.provider_enabled:
            errors.append("Login provider must be configured in production/staging")

        provider_fields = [self.provider_login_url, self.provider_userinfo_url]
        if any(provider_fields) and not all(provider_fields):
            missing: list[str] = []
            if not self.provider_login_url:
                missing.append("UA_PROVIDER_LOGIN_URL")
            if not self.provider_userinfo_url:
                missing.append("UA_PROVIDER_USERINFO_URL")
            errors.append(
                f"Login provider partially configured, missing: {', '.join(missing)}"
            )

        if self.session_ttl_seconds <= 0:
            errors.append("UA_SESSION_TTL_SECONDS must be positive")

        return errors


@lru_cache(maxsize=1)
def get_settings() -> GatewaySettings:
    overrides: dict[str, str] = {}
    secret = _env_str("UA_SESSION_SECRET")
    if secret is not None:
        overrides["session_secret"] = secret
    return GatewaySettings(
        env=os.getenv("UA_ENV", "dev"),
        session_secret_from_env=secret is not None,
        session_cookie_name=os.getenv("UA_SESSION_COOKIE_NAME", "ua_session"),
        session_ttl_seconds=_env_int("UA_SESSION_TTL_SECONDS", 28800),
        root_path=os.getenv("UA_ROOT_PATH", "/"),
        match=os.getenv("UA_MATCH"),
        ignore=os.getenv("UA_IGNORE"),
        provider_login_url=_env_str("UA_PROVIDER_LOGIN_URL"),
        provider_userinfo_url=_env_str("UA_PROVIDER_USERINFO_URL"),
        trust_proxy=_env_bool("UA_TRUST_PROXY", False),
        log_level=os.getenv("UA_LOG_LEVEL", "INFO").upper(),
        **overrides,
    )


def reset_settings() -> None:
    get_settings.cache_clear()
