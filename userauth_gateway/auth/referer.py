"""Safe post-login / post-logout redirect targets."""

from __future__ import annotations

from typing import Optional


def resolve_referer(
    query_redirect: Optional[str],
    referer_header: Optional[str],
    reserved_path: str,
    root_path: str,
) -> str:
    """Pick a root-relative redirect target.

    Order: ``?redirect=`` query value, then the ``Referer`` header, then
    ``root_path``. Anything that is not a local path (absolute URLs,
    protocol-relative ``//host`` URLs, relative paths, empty strings) falls
    back to ``root_path``, as does anything under ``reserved_path`` so the
    login/logout endpoints never redirect into themselves.
    """
    referer = query_redirect or referer_header or root_path
    if not referer.startswith("/") or referer.startswith(("//", "/\\")):
        return root_path
    if referer.startswith(reserved_path):
        return root_path
    return referer


def referer_for(request, reserved_path: str, root_path: str) -> str:
    """Resolve the referer for a Starlette request."""
    return resolve_referer(
        request.query_params.get("redirect"),
        request.headers.get("referer"),
        reserved_path,
        root_path,
    )
