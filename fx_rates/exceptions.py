from __future__ import annotations


class RatesError(Exception):
    pass


class FetchError(RatesError):
    """Raised when the rate provider fails or returns an unusable payload."""
