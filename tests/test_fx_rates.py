from __future__ import annotations

import json
from decimal import Decimal

import pytest

from financas.core.net import HttpResponse, ProviderError
from fx_rates import FALLBACK_RATES, ExchangeRateApiProvider, FetchError, RateCache, RateTable, get_rates


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FailingProvider:
    def fetch(self) -> RateTable:
        raise FetchError("down")


class _StaticProvider:
    def __init__(self, table: RateTable):
        self.table = table
        self.calls = 0

    def fetch(self) -> RateTable:
        self.calls += 1
        return self.table


TABLE = RateTable(base="BRL", rates={"USD": Decimal("0.2")}, last_updated="2025-01-01T00:00:00+00:00")


def test_cache_expires_after_ttl() -> None:
    clock = _Clock()
    cache = RateCache(ttl_seconds=3600, clock=clock)
    assert cache.get() is None
    cache.set(TABLE)
    assert cache.get() == TABLE
    clock.now += 3599
    assert cache.is_fresh()
    clock.now += 2
    assert cache.get() is None
    assert cache.get(allow_stale=True) == TABLE


def test_cache_persists_to_json(tmp_path) -> None:
    clock = _Clock()
    path = tmp_path / "fx" / "rates.json"
    RateCache(path=path, clock=clock).set(TABLE)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["table"]["rates"] == {"USD": "0.2"}
    reloaded = RateCache(path=path, clock=clock)
    assert reloaded.get() == TABLE


def test_cache_ignores_corrupt_file(tmp_path) -> None:
    path = tmp_path / "rates.json"
    path.write_text("{not json", encoding="utf-8")
    assert RateCache(path=path).get(allow_stale=True) is None


def test_get_rates_uses_fresh_cache() -> None:
    provider = _StaticProvider(TABLE)
    cache = RateCache(clock=_Clock())
    assert get_rates(provider, cache) == TABLE
    assert get_rates(provider, cache) == TABLE
    assert provider.calls == 1
    get_rates(provider, cache, force=True)
    assert provider.calls == 2


def test_get_rates_falls_back_on_failure() -> None:
    table = get_rates(_FailingProvider(), RateCache(clock=_Clock()))
    assert table is FALLBACK_RATES
    assert table.is_fallback
    assert table.rate("usd") == Decimal("0.1858")


def test_get_rates_prefers_stale_cache_over_fallback() -> None:
    clock = _Clock()
    cache = RateCache(ttl_seconds=10, clock=clock)
    cache.set(TABLE)
    clock.now += 60
    assert get_rates(_FailingProvider(), cache) == TABLE


def test_provider_parses_payload() -> None:
    payload = {"base": "BRL", "rates": {"BRL": 1, "USD": 0.1858, "EUR": "0.1695", "BAD": None}}

    def fake_http(url: str, **kw) -> HttpResponse:
        return HttpResponse(status_code=200, content=json.dumps(payload).encode("utf-8"))

    table = ExchangeRateApiProvider(http=fake_http).fetch()
    assert table.base == "BRL"
    assert table.rates["USD"] == Decimal("0.1858")
    assert "BAD" not in table.rates
    assert not table.is_fallback


def test_provider_wraps_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NETWORK_ENABLED", raising=False)
    with pytest.raises(FetchError):
        ExchangeRateApiProvider().fetch()

    def broken(url: str, **kw) -> HttpResponse:
        return HttpResponse(status_code=200, content=b"<html>")

    with pytest.raises(FetchError):
        ExchangeRateApiProvider(http=broken).fetch()

    def empty(url: str, **kw) -> HttpResponse:
        return HttpResponse(status_code=200, content=b"{}")

    with pytest.raises(FetchError):
        ExchangeRateApiProvider(http=empty).fetch()

    def refused(url: str, **kw) -> HttpResponse:
        raise ProviderError("blocked")

    with pytest.raises(FetchError):
        ExchangeRateApiProvider(http=refused).fetch()


def test_rate_table_round_trips_through_dict() -> None:
    assert RateTable.from_dict(TABLE.to_dict()) == TABLE
