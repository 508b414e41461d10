"""Currency detection on raw spreadsheet values and conversion to the base currency."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from financas.agenda.errors import UnknownCurrency
from financas.agenda.normalize import parse_locale_number

logger = logging.getLogger(__name__)

BASE_CURRENCY = "BRL"
# IOF on foreign-currency card transactions.
DEFAULT_TAX_RATE = Decimal("0.038")

# Checked in order: symbol-prefixed dollars ("R$", "US$", "C$", "A$") before the bare "$".
CURRENCY_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("BRL", re.compile(r"R\$|BRL", re.IGNORECASE)),
    ("USD", re.compile(r"US\$|USD", re.IGNORECASE)),
    ("CAD", re.compile(r"C\$|CAD", re.IGNORECASE)),
    ("AUD", re.compile(r"A\$|AUD", re.IGNORECASE)),
    ("EUR", re.compile(r"€|EUR", re.IGNORECASE)),
    ("GBP", re.compile(r"£|GBP", re.IGNORECASE)),
    ("JPY", re.compile(r"¥|JPY", re.IGNORECASE)),
    ("CHF", re.compile(r"CHF", re.IGNORECASE)),
    ("CNY", re.compile(r"元|CNY", re.IGNORECASE)),
    ("USD", re.compile(r"\$")),
]

_NON_NUMERIC_RE = re.compile(r"[^\d.,-]")

CURRENCY_SYMBOLS = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "CHF": "CHF",
    "CNY": "¥",
}


def detect_currency(raw: Any, base: str = BASE_CURRENCY) -> tuple[str, str]:
    """Returns (currency_code, clean_numeric_string); unmarked values belong to `base`."""
    if not isinstance(raw, str) or not raw.strip():
        return base, "0"
    s = raw.strip().strip('"').strip()
    for code, pattern in CURRENCY_PATTERNS:
        if pattern.search(s):
            clean = _NON_NUMERIC_RE.sub("", pattern.sub("", s)).strip()
            return code, clean
    return base, s


def parse_value(raw: Any, base: str = BASE_CURRENCY) -> tuple[str, Decimal]:
    currency, clean = detect_currency(raw, base=base)
    return currency, parse_locale_number(clean)


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get((code or "").upper(), code)


def convert_to_base(
    value: Decimal,
    from_currency: str,
    rates: Mapping[str, Any],
    *,
    base_currency: str = BASE_CURRENCY,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> Decimal:
    """
    `rates` are quoted per unit of the base currency (1 BRL = 0.1858 USD), so the
    base amount is value / rate, plus the transaction tax.
    """
    value = Decimal(value)
    code = (from_currency or base_currency).upper()
    if code == base_currency.upper() or not value:
        return value
    rate = _rate(rates.get(code))
    if rate is None:
        logger.warning("%s", UnknownCurrency(f"No exchange rate for {code}; keeping original value {value}"))
        return value
    return value / rate * (Decimal("1") + Decimal(tax_rate))


def _rate(raw: Any) -> Optional[Decimal]:
    if raw in (None, ""):
        return None
    try:
        rate = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not rate.is_finite() or rate <= 0:
        return None
    return rate


@dataclass
class ConversionSettings:
    base_currency: str = BASE_CURRENCY
    tax_rate: Decimal = DEFAULT_TAX_RATE
    tax_enabled: bool = True
    # None: the tax applies to every category
    taxed_categories: Optional[frozenset[str]] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def set_tax_rate(self, rate: Any) -> bool:
        try:
            r = Decimal(str(rate))
        except InvalidOperation:
            r = None
        if r is None or not r.is_finite() or r < 0 or r > 1:
            logger.warning("Invalid transaction tax rate %r; keeping %s", rate, self.tax_rate)
            return False
        with self._lock:
            self.tax_rate = r
        logger.info("Transaction tax rate updated to %.2f%%", float(r * 100))
        return True

    def tax_for(self, category: Optional[str] = None) -> Decimal:
        if not self.tax_enabled:
            return Decimal("0")
        if self.taxed_categories is not None and (category or "") not in self.taxed_categories:
            return Decimal("0")
        return self.tax_rate

    def convert(
        self,
        value: Decimal,
        from_currency: str,
        rates: Mapping[str, Any],
        *,
        category: Optional[str] = None,
    ) -> Decimal:
        return convert_to_base(
            value,
            from_currency,
            rates,
            base_currency=self.base_currency,
            tax_rate=self.tax_for(category),
        )


_DEFAULT_SETTINGS = ConversionSettings()


def default_conversion_settings() -> ConversionSettings:
    """Process-wide instance; configured once by the CLI/ingestion boundary."""
    return _DEFAULT_SETTINGS
