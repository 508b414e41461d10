"""Helpers over issued invoices (notas): per-provider and per-year rollups."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from financas.agenda.models import Occurrence
from financas.agenda.normalize import add_months
from financas.utils.money import money_2dp

EQUAL = "equal"


def invoices_by_provider(invoices: Iterable[Occurrence], provider: str) -> list[Occurrence]:
    return [inv for inv in invoices if inv.provider == provider]


def invoices_by_year(invoices: Iterable[Occurrence], year: int) -> list[Occurrence]:
    return [inv for inv in invoices if inv.adjusted_date.year == year]


def invoice_total(invoices: Iterable[Occurrence]) -> Decimal:
    return money_2dp(sum((inv.value for inv in invoices), Decimal("0")))


def available_years(invoices: Iterable[Occurrence]) -> list[int]:
    """Distinct invoice years, newest first."""
    return sorted({inv.adjusted_date.year for inv in invoices}, reverse=True)


def providers(invoices: Iterable[Occurrence], year: Optional[int] = None) -> list[str]:
    items = list(invoices)
    if year is not None:
        items = invoices_by_year(items, year)
    return sorted({inv.provider for inv in items})


def group_by_provider_and_month(invoices: Iterable[Occurrence], year: int) -> dict[str, list[Decimal]]:
    """provider -> 12 monthly totals (index 0 is January)."""
    year_items = invoices_by_year(invoices, year)
    grouped: dict[str, list[Decimal]] = {p: [Decimal("0")] * 12 for p in providers(year_items)}
    for inv in year_items:
        grouped[inv.provider][inv.adjusted_date.month - 1] += inv.value
    return grouped


def compare_providers(
    invoices: Iterable[Occurrence],
    year: int,
    provider_a: str,
    provider_b: str,
) -> dict[str, object]:
    year_items = invoices_by_year(invoices, year)
    total_a = invoice_total(invoices_by_provider(year_items, provider_a))
    total_b = invoice_total(invoices_by_provider(year_items, provider_b))
    if total_a > total_b:
        higher = provider_a
    elif total_b > total_a:
        higher = provider_b
    else:
        higher = EQUAL
    return {
        provider_a: total_a,
        provider_b: total_b,
        "difference": abs(total_a - total_b),
        "higher": higher,
    }


def invoices_for_date(invoices: Iterable[Occurrence], day: dt.date) -> list[Occurrence]:
    return [inv for inv in invoices if inv.adjusted_date == day]


def trailing_window(year: int, month: int) -> tuple[dt.date, dt.date]:
    """[first day of the month 12 months earlier, first day of `month`)."""
    sy, sm = add_months(year, month, -12)
    return dt.date(sy, sm, 1), dt.date(year, month, 1)


def trailing_12_month_invoices(
    invoices: Iterable[Occurrence],
    year: int,
    month: int,
    provider: Optional[str] = None,
) -> list[Occurrence]:
    start, end = trailing_window(year, month)
    out = [inv for inv in invoices if start <= inv.adjusted_date < end]
    if provider is not None:
        out = invoices_by_provider(out, provider)
    return sorted(out, key=lambda inv: inv.adjusted_date)


def trailing_12_month_sum(
    invoices: Iterable[Occurrence],
    year: int,
    month: int,
    provider: Optional[str] = None,
) -> Decimal:
    """Gross revenue of the 12 months ending the month before (year, month)."""
    return invoice_total(trailing_12_month_invoices(invoices, year, month, provider))


def provider_tax_summary(
    invoices: Iterable[Occurrence],
    year: int,
    provider_rates: Mapping[str, Decimal],
) -> dict[str, dict[str, Decimal]]:
    """Yearly invoice total and the tax implied by each provider's flat rate."""
    year_items = invoices_by_year(invoices, year)
    out: dict[str, dict[str, Decimal]] = {}
    for p in providers(year_items):
        total = invoice_total(invoices_by_provider(year_items, p))
        rate = Decimal(str(provider_rates.get(p, 0)))
        out[p] = {"total": total, "rate": rate, "tax": money_2dp(total * rate)}
    return out


def abbreviate_name(full_name: str) -> str:
    """First and last word of a client name."""
    parts = (full_name or "").split()
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    return f"{parts[0]} {parts[-1]}"
