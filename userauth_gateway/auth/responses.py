"""Content-negotiated redirect responses.

Browsers get a plain redirect. Clients that prefer JSON get a 401 with a
fixed error body and the intended destination in the ``Location`` header, so
API callers can discover it without following a browser-style redirect.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.responses import Response

UNAUTHORIZED_BODY = {"error": "401 Unauthorized"}

# (name, media type) in server preference order
OFFERS: tuple[tuple[str, str], ...] = (
    ("html", "text/html"),
    ("json", "application/json"),
)

# same safe set Starlette's RedirectResponse uses for the Location header
_LOCATION_SAFE = ":/%#?=@[]!$&'()*+,;"


class _AcceptEntry(NamedTuple):
    type: str
    subtype: str
    q: float
    order: int


def _parse_accept(header: str) -> list[_AcceptEntry]:
    entries: list[_AcceptEntry] = []
    for order, part in enumerate(header.split(",")):
        media, *params = [p.strip() for p in part.split(";")]
        if "/" not in media:
            continue
        type_, _, subtype = media.lower().partition("/")
        q = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    pass
        entries.append(_AcceptEntry(type_.strip(), subtype.strip(), q, order))
    return entries


def _specificity(entry: _AcceptEntry, type_: str, subtype: str) -> Optional[int]:
    s = 0
    if entry.type == type_:
        s |= 4
    elif entry.type != "*":
        return None
    if entry.subtype == subtype:
        s |= 2
    elif entry.subtype != "*":
        return None
    return s


def preferred_type(
    accept: Optional[str], offers: Sequence[tuple[str, str]] = OFFERS
) -> Optional[str]:
    """Return the name of the offer the ``Accept`` header prefers.

    Ranks by q-value, then specificity of the matching range, then position
    in the header, then position in ``offers``. A missing header accepts
    anything. Returns None when no offer is acceptable.
    """
    entries = _parse_accept(accept or "*/*")

    ranked = []
    for index, (name, media_type) in enumerate(offers):
        type_, _, subtype = media_type.partition("/")
        best = None
        for entry in entries:
            s = _specificity(entry, type_, subtype)
            if s is None:
                continue
            rank = (s, entry.q, -entry.order)
            if best is None or rank > best:
                best = rank
        if best is None or best[1] <= 0:
            continue
        s, q, neg_order = best
        ranked.append((-q, -s, -neg_order, index, name))

    if not ranked:
        return None
    ranked.sort()
    return ranked[0][-1]


def wants_json(request: Request) -> bool:
    return preferred_type(request.headers.get("accept")) == "json"


def emit_redirect(request: Request, url: str, status_code: int = 302) -> Response:
    """Redirect to ``url``, or answer 401 + ``Location`` for JSON clients."""
    if wants_json(request):
        return JSONResponse(
            UNAUTHORIZED_BODY,
            status_code=401,
            headers={"Location": quote(url, safe=_LOCATION_SAFE)},
        )
    return RedirectResponse(url=url, status_code=status_code)
