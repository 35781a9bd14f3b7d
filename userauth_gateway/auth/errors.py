"""Errors raised by the authentication gate."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when gate options are missing, malformed, or inconsistent."""

    pass
