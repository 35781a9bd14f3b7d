"""Path matching for the authentication gate.

Compiles the declarative ``match`` / ``ignore`` options into a single
``requires_auth(path, request) -> bool`` predicate.

Route strings follow prefix semantics: ``"/user"`` matches ``/user``,
``/user/`` and ``/user/foo`` but not ``/users``. Segments may be ``:name``
placeholders and ``*`` matches anything. Matching is case-insensitive.
"""

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

log = logging.getLogger("userauth-gateway.matching")

PathPredicate = Callable[[str, Any], bool]

_TOKEN_RE = re.compile(r":(\w+)|\*")


class MatchKind(str, Enum):
    PATH = "path"
    PATTERN = "pattern"
    PREDICATE = "predicate"


def compile_route(route: str) -> re.Pattern:
    """Compile a route string into an anchored, prefix-matching regex."""
    parts: list[str] = []
    pos = 0
    for token in _TOKEN_RE.finditer(route):
        parts.append(re.escape(route[pos : token.start()]))
        parts.append("([^/]+?)" if token.group(1) else "(.*)")
        pos = token.end()
    parts.append(re.escape(route[pos:]))

    body = "".join(parts)
    # a trailing slash on the route is optional on the path
    if body.endswith("/"):
        body = body[:-1]
    return re.compile("^" + body + r"(?:/(?=$))?(?=/|$)", re.IGNORECASE)


def _accepts_request(fn: Callable) -> bool:
    try:
        params = list(inspect.signature(fn).parameters.values())
    except (TypeError, ValueError):
        return True
    if any(p.kind == p.VAR_POSITIONAL for p in params):
        return True
    positional = [
        p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2


@dataclass(frozen=True)
class MatchSpec:
    """A resolved match or ignore option."""

    kind: MatchKind
    value: Any

    @classmethod
    def from_value(cls, value: Any) -> Optional["MatchSpec"]:
        """Classify an option value; returns None when it is not usable."""
        if isinstance(value, str):
            return cls(MatchKind.PATH, value)
        if isinstance(value, re.Pattern):
            return cls(MatchKind.PATTERN, value)
        if callable(value):
            return cls(MatchKind.PREDICATE, value)
        return None

    def to_predicate(self) -> PathPredicate:
        if self.kind is MatchKind.PATH:
            route = compile_route(self.value)

            def route_match(path: str, request: Any = None) -> bool:
                return route.match(path or "") is not None

            return route_match

        if self.kind is MatchKind.PATTERN:
            pattern = self.value

            def pattern_match(path: str, request: Any = None) -> bool:
                return pattern.search(path or "") is not None

            return pattern_match

        fn = self.value
        if _accepts_request(fn):
            return fn

        def path_only(path: str, request: Any = None) -> bool:
            return fn(path)

        return path_only


def _never(path: str, request: Any = None) -> bool:
    return False


def compile_path_predicate(match: Any = None, ignore: Any = None) -> PathPredicate:
    """Build the ``requires_auth`` predicate.

    ``match`` wins when it resolves; otherwise ``ignore`` is negated.
    When neither resolves no path requires authentication.
    """
    spec = MatchSpec.from_value(match)
    if spec is not None:
        if ignore is not None:
            log.debug("both match and ignore given, ignore is unused")
        return spec.to_predicate()

    spec = MatchSpec.from_value(ignore)
    if spec is not None:
        ignored = spec.to_predicate()

        def requires_auth(path: str, request: Any = None) -> bool:
            return not ignored(path, request)

        return requires_auth

    log.debug("ignore all paths")
    return _never
