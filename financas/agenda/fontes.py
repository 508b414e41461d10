"""
Runtime configuration variables read from the "fontes" sheet.

The sheet has `Variable` / `Value` columns:
  - IOF             transaction tax as a fraction (0.038)
  - Aliquota<Code>  provider tax rate as a percentage (14 -> 0.14)
Unknown variables are ignored; unparseable values keep the current setting.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from financas.agenda.currency import ConversionSettings
from financas.agenda.models import column_value
from financas.agenda.normalize import looks_numeric, parse_locale_number

logger = logging.getLogger(__name__)

IOF_VARIABLE = "IOF"
PROVIDER_RATE_PREFIX = "Aliquota"


def _number(raw: str) -> Optional[Decimal]:
    s = (raw or "").strip().rstrip("%").strip()
    if not looks_numeric(s):
        return None
    return parse_locale_number(s)


def apply_fontes(
    rows: Iterable[Mapping[str, str]],
    settings: ConversionSettings,
    provider_rates: Optional[Mapping[str, Decimal]] = None,
) -> dict[str, Decimal]:
    """
    Apply IOF to `settings` and return provider rates merged over `provider_rates`.
    """
    rates: dict[str, Decimal] = dict(provider_rates or {})
    for r in rows:
        variable = column_value(r, "Variable")
        raw_value = column_value(r, "Value")
        if not variable:
            continue
        if variable.upper() == IOF_VARIABLE:
            v = _number(raw_value)
            if v is None:
                logger.warning("Ignoring non-numeric IOF value %r", raw_value)
                continue
            settings.set_tax_rate(v)
        elif variable.startswith(PROVIDER_RATE_PREFIX) and len(variable) > len(PROVIDER_RATE_PREFIX):
            provider = variable[len(PROVIDER_RATE_PREFIX) :]
            v = _number(raw_value)
            if v is None:
                logger.warning("Ignoring non-numeric %s value %r", variable, raw_value)
                continue
            rates[provider] = v / Decimal("100")
            logger.info("%s loaded: %.2f%%", variable, float(v))
    return rates
