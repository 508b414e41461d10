from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from financas.utils.money import to_decimal

FALLBACK = "fallback"


@dataclass(frozen=True)
class RateTable:
    """Units of each currency per one unit of `base` (1 BRL = 0.1858 USD)."""

    base: str
    rates: Mapping[str, Decimal] = field(default_factory=dict)
    last_updated: str = FALLBACK

    @property
    def is_fallback(self) -> bool:
        return self.last_updated == FALLBACK

    def rate(self, code: str) -> Optional[Decimal]:
        return self.rates.get((code or "").upper())

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base,
            "rates": {k: str(v) for k, v in sorted(self.rates.items())},
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RateTable":
        rates: dict[str, Decimal] = {}
        for k, v in (data.get("rates") or {}).items():
            d = to_decimal(v)
            if d is not None and d > 0:
                rates[str(k).upper()] = d
        return cls(
            base=str(data.get("base") or "BRL").upper(),
            rates=rates,
            last_updated=str(data.get("last_updated") or FALLBACK),
        )


FALLBACK_RATES = RateTable(
    base="BRL",
    rates={
        "USD": Decimal("0.1858"),
        "EUR": Decimal("0.1695"),
        "GBP": Decimal("0.1493"),
        "JPY": Decimal("27.78"),
        "CAD": Decimal("0.2618"),
        "AUD": Decimal("0.2941"),
        "CHF": Decimal("0.1639"),
        "CNY": Decimal("1.351"),
    },
    last_updated=FALLBACK,
)
