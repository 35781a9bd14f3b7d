"""Request-bound session access for the gate flows.

The gate never owns session storage. It reads and writes two keys of the
mapping that Starlette's ``SessionMiddleware`` places in ``scope["session"]``:
the configured user field and a transient pending-referer key.
"""

from __future__ import annotations

from typing import Any, MutableMapping, Optional

from starlette.requests import HTTPConnection

PENDING_REFERER_KEY = "userauth_login_referer"


class SessionStore:
    """Get/set/delete capability over a request session mapping."""

    def __init__(self, data: MutableMapping[str, Any]):
        self._data = data

    @classmethod
    def from_request(cls, request: HTTPConnection) -> Optional["SessionStore"]:
        """Wrap the request session, or return None when no session exists."""
        data = request.scope.get("session")
        if data is None:
            return None
        return cls(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def pop(self, key: str, default: Any = None) -> Any:
        """Read a key and remove it in one step."""
        return self._data.pop(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"SessionStore(keys={sorted(self._data)!r})"
