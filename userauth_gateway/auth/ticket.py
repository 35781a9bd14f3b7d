"""Ticket-based login provider client.

A small client for providers that redirect back with a one-time ``ticket``
query parameter (CAS-style). It supplies the two mandatory gate hooks:

- ``login_url_formatter``: ``{login_url}?redirect={callback_url}``
- ``get_user``: validates the ticket against the provider's userinfo endpoint
  and returns the user document, or None when there is no valid ticket.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from fastapi import Request

log = logging.getLogger("userauth-gateway.ticket")

# provider answers meaning "ticket not valid", not a provider failure
_REJECTED_STATUSES = {400, 401, 403, 404}


class TicketProvider:
    """Login provider speaking the redirect + ticket protocol."""

    def __init__(
        self,
        login_url: str,
        userinfo_url: str,
        ticket_param: str = "ticket",
        timeout: float = 10.0,
    ):
        """Initialize the provider client.

        Args:
            login_url: Provider login page
            userinfo_url: Endpoint validating ``?ticket=`` and returning the user
            ticket_param: Query parameter carrying the ticket on the callback
            timeout: HTTP timeout in seconds for ticket validation
        """
        self.login_url = login_url
        self.userinfo_url = userinfo_url
        self.ticket_param = ticket_param
        self.timeout = timeout

    def login_url_formatter(self, callback_url: str, root_path: str, request) -> str:
        sep = "&" if "?" in self.login_url else "?"
        return f"{self.login_url}{sep}{urlencode({'redirect': callback_url})}"

    async def get_user(self, request: Request) -> Optional[dict[str, Any]]:
        """Resolve the user for the ticket on the request.

        Returns:
            The provider's user document, or None if no ticket was sent or the
            provider rejected it

        Raises:
            httpx.HTTPError: On transport errors or provider server errors
        """
        ticket = request.query_params.get(self.ticket_param)
        if not ticket:
            return None

        # follow_redirects=False keeps validation on the configured host
        async with httpx.AsyncClient(
            follow_redirects=False, timeout=self.timeout
        ) as client:
            response = await client.get(self.userinfo_url, params={"ticket": ticket})

        if response.status_code in _REJECTED_STATUSES:
            log.info("Ticket rejected by provider: status=%s", response.status_code)
            return None
        response.raise_for_status()

        user = response.json()
        if not isinstance(user, dict) or not user:
            log.warning("Provider returned no user document for ticket")
            return None
        return user
