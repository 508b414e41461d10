from __future__ import annotations

import json
import logging
from typing import Any, Callable

from financas.core.net import HttpResponse, ProviderError, http_get
from financas.utils.money import to_decimal
from financas.utils.time import utcnow
from fx_rates.exceptions import FetchError
from fx_rates.models import RateTable

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.exchangerate-api.com/v4/latest/BRL"


class ExchangeRateApiProvider:
    name = "exchangerate-api"

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        timeout_s: float = 10.0,
        http: Callable[..., HttpResponse] = http_get,
    ):
        self.url = url
        self.timeout_s = timeout_s
        self._http = http

    def parse(self, payload: dict[str, Any]) -> RateTable:
        raw_rates = payload.get("rates")
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise FetchError("Rate payload has no rates.")
        rates = {}
        for code, value in raw_rates.items():
            d = to_decimal(value)
            if d is not None and d > 0:
                rates[str(code).upper()] = d
        base = str(payload.get("base") or payload.get("base_code") or "BRL").upper()
        return RateTable(base=base, rates=rates, last_updated=utcnow().isoformat())

    def fetch(self) -> RateTable:
        try:
            resp = self._http(self.url, timeout_s=self.timeout_s)
        except ProviderError as e:
            raise FetchError(str(e)) from e
        if resp.status_code != 200:
            raise FetchError(f"Unexpected status {resp.status_code} from {self.name}.")
        try:
            payload = json.loads(resp.content.decode("utf-8"))
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {self.name}: {e}") from e
        table = self.parse(payload)
        logger.info("Fetched %d exchange rates (base %s)", len(table.rates), table.base)
        return table
