from __future__ import annotations

__all__ = [
    "ExchangeRateApiProvider",
    "RateCache",
    "RateTable",
    "FALLBACK_RATES",
    "RatesError",
    "FetchError",
    "get_rates",
]

from fx_rates.cache import RateCache
from fx_rates.exceptions import FetchError, RatesError
from fx_rates.models import FALLBACK_RATES, RateTable
from fx_rates.provider import ExchangeRateApiProvider
from fx_rates.utils import get_rates
