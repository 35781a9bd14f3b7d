"""Gate configuration.

``UserAuthConfig`` is built once per gate by ``build_user_auth_config`` (or
``UserAuthConfig.from_mapping`` for camelCase option dicts). The builder
applies defaults, prefixes the reserved paths with ``root_path``, compiles
the match/ignore options and validates everything up front.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional

from userauth_gateway.auth.errors import ConfigurationError
from userauth_gateway.auth.matching import PathPredicate, compile_path_predicate

log = logging.getLogger("userauth-gateway.config")


async def default_login_callback(request, user) -> tuple[Any, Optional[str]]:
    return user, None


async def default_logout_callback(request, user) -> Optional[str]:
    return None


def default_login_check(request) -> bool:
    return True


async def default_redirect_handler(
    request, login_redirect: Callable[[], Awaitable[Any]], call_next
):
    return await login_redirect()


def _require_nothing(path: str, request: Any = None) -> bool:
    return False


def _with_root(root_path: str, path: str) -> str:
    if root_path == "/":
        return path
    return root_path.rstrip("/") + "/" + path.lstrip("/")


@dataclass(frozen=True)
class UserAuthConfig:
    """Resolved gate options.

    Attributes:
        root_path: Application root; prefix of the reserved paths
        login_path: Starts the provider login
        login_callback_path: Where the provider sends the user back
        logout_path: Clears the session user
        user_field: Session key holding the authenticated user
        host: Host used for the callback URL (default: request host)
        protocol: Scheme used for the callback URL (default: request scheme)
        trust_proxy: Take host/scheme from X-Forwarded-* headers
        requires_auth: Compiled ``(path, request) -> bool`` predicate
    """

    root_path: str = "/"
    login_path: str = "/login"
    login_callback_path: str = "/login/callback"
    logout_path: str = "/logout"
    user_field: str = "user"
    host: Optional[str] = None
    protocol: Optional[str] = None
    trust_proxy: bool = False
    requires_auth: PathPredicate = _require_nothing

    get_user: Optional[Callable] = None
    login_url_formatter: Optional[Callable] = None
    login_callback: Callable = default_login_callback
    logout_callback: Callable = default_logout_callback
    login_check: Callable = default_login_check
    redirect_handler: Callable = default_redirect_handler

    @property
    def reserved_paths(self) -> tuple[str, str, str]:
        return (self.login_path, self.login_callback_path, self.logout_path)

    def validate(self) -> list[str]:
        errors: list[str] = []

        if not self.root_path.startswith("/"):
            errors.append(f"root_path must start with '/', got {self.root_path!r}")
        for name in ("login_path", "login_callback_path", "logout_path"):
            value = getattr(self, name)
            if not value.startswith("/"):
                errors.append(f"{name} must start with '/', got {value!r}")
        if self.login_callback_path == self.login_path:
            errors.append("login_callback_path must differ from login_path")
        if not self.user_field:
            errors.append("user_field must not be empty")

        if self.get_user is None:
            errors.append("get_user is required")
        if self.login_url_formatter is None:
            errors.append("login_url_formatter is required")
        for name in (
            "get_user",
            "login_url_formatter",
            "login_callback",
            "logout_callback",
            "login_check",
            "redirect_handler",
        ):
            value = getattr(self, name)
            if value is not None and not callable(value):
                errors.append(f"{name} must be callable")

        return errors

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "UserAuthConfig":
        """Build from a mapping that may use camelCase or legacy keys."""
        kwargs: dict[str, Any] = {}
        unknown: list[str] = []
        for key, value in options.items():
            name = OPTION_ALIASES.get(key)
            if name is None:
                unknown.append(key)
                continue
            if name in kwargs and kwargs[name] is not None and value is not None:
                raise ConfigurationError(f"option {name} given more than once")
            if value is not None or name not in kwargs:
                kwargs[name] = value
        if unknown:
            raise ConfigurationError(f"unknown options: {', '.join(sorted(unknown))}")
        return build_user_auth_config(**kwargs)


_OPTION_NAMES = (
    "match",
    "ignore",
    "root_path",
    "login_path",
    "login_callback_path",
    "logout_path",
    "user_field",
    "host",
    "protocol",
    "trust_proxy",
    "get_user",
    "login_url_formatter",
    "login_callback",
    "logout_callback",
    "login_check",
    "redirect_handler",
)

OPTION_ALIASES: dict[str, str] = {name: name for name in _OPTION_NAMES}
OPTION_ALIASES.update(
    {
        "rootPath": "root_path",
        "loginPath": "login_path",
        "loginCallbackPath": "login_callback_path",
        "logoutPath": "logout_path",
        "userField": "user_field",
        "trustProxy": "trust_proxy",
        "getUser": "get_user",
        "loginURLFormatter": "login_url_formatter",
        # historical misspellings
        "loginURLFormater": "login_url_formatter",
        "loginURLForamter": "login_url_formatter",
        "loginCallback": "login_callback",
        "logoutCallback": "logout_callback",
        "loginCheck": "login_check",
        "redirectHandler": "redirect_handler",
    }
)


def build_user_auth_config(
    match: Any = None,
    ignore: Any = None,
    *,
    root_path: Optional[str] = None,
    login_path: Optional[str] = None,
    login_callback_path: Optional[str] = None,
    logout_path: Optional[str] = None,
    user_field: Optional[str] = None,
    host: Optional[str] = None,
    protocol: Optional[str] = None,
    trust_proxy: Optional[bool] = None,
    get_user: Optional[Callable] = None,
    login_url_formatter: Optional[Callable] = None,
    login_callback: Optional[Callable] = None,
    logout_callback: Optional[Callable] = None,
    login_check: Optional[Callable] = None,
    redirect_handler: Optional[Callable] = None,
) -> UserAuthConfig:
    """Apply defaults, root the reserved paths and validate.

    Raises:
        ConfigurationError: If any option is missing or inconsistent
    """
    root_path = root_path or "/"
    login_path = login_path or "/login"
    logout_path = logout_path or "/logout"
    login_callback_path = login_callback_path or login_path + "/callback"

    config = UserAuthConfig(
        root_path=root_path,
        login_path=_with_root(root_path, login_path),
        login_callback_path=_with_root(root_path, login_callback_path),
        logout_path=_with_root(root_path, logout_path),
        user_field=user_field if user_field is not None else "user",
        host=host,
        protocol=protocol,
        trust_proxy=bool(trust_proxy),
        requires_auth=compile_path_predicate(match, ignore),
        get_user=get_user,
        login_url_formatter=login_url_formatter,
        login_callback=login_callback or default_login_callback,
        logout_callback=logout_callback or default_logout_callback,
        login_check=login_check or default_login_check,
        redirect_handler=redirect_handler or default_redirect_handler,
    )

    errors = config.validate()
    if errors:
        error_msg = "; ".join(errors)
        log.error("Gate configuration invalid: %s", error_msg)
        raise ConfigurationError(error_msg)

    log.debug(
        "gate configured: root=%s login=%s callback=%s logout=%s user_field=%s",
        config.root_path,
        config.login_path,
        config.login_callback_path,
        config.logout_path,
        config.user_field,
    )
    return config
