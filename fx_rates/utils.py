from __future__ import annotations

import logging
from typing import Optional

from fx_rates.cache import RateCache
from fx_rates.exceptions import FetchError
from fx_rates.models import FALLBACK_RATES, RateTable
from fx_rates.provider import ExchangeRateApiProvider

logger = logging.getLogger(__name__)


def get_rates(
    provider: Optional[ExchangeRateApiProvider] = None,
    cache: Optional[RateCache] = None,
    *,
    force: bool = False,
) -> RateTable:
    """
    Fresh cached table if any, else a provider fetch (stored in the cache).
    On fetch failure: the stale cached table, else the built-in fallback table.
    """
    provider = provider or ExchangeRateApiProvider()
    cache = cache or RateCache()
    if not force:
        cached = cache.get()
        if cached is not None:
            return cached
    try:
        table = provider.fetch()
    except FetchError as e:
        stale = cache.get(allow_stale=True)
        if stale is not None:
            logger.warning("Exchange rate fetch failed (%s); using cached rates from %s", e, stale.last_updated)
            return stale
        logger.warning("Exchange rate fetch failed (%s); using fallback rates", e)
        return FALLBACK_RATES
    cache.set(table)
    return table

