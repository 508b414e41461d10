from __future__ import annotations

import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Collection, Iterable, Optional

from pydantic import BaseModel, Field

from financas.agenda.models import AccountBalance, Occurrence
from financas.agenda.normalize import add_months
from financas.utils.money import money_2dp


def _year_month(d: dt.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def week_start(d: dt.date) -> dt.date:
    """Monday of the week containing `d`."""
    return d - dt.timedelta(days=d.weekday())


class MonthTotal(BaseModel):
    total: Decimal = Decimal("0")
    categories: dict[str, Decimal] = Field(default_factory=dict)


class Totals(BaseModel):
    by_month: dict[str, MonthTotal] = Field(default_factory=dict)
    by_week: dict[str, Decimal] = Field(default_factory=dict)
    total: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, object]:
        return {
            "by_month": {
                k: {"total": str(v.total), "categories": {c: str(x) for c, x in v.categories.items()}}
                for k, v in sorted(self.by_month.items())
            },
            "by_week": {k: str(v) for k, v in sorted(self.by_week.items())},
            "total": str(self.total),
        }


def _counted(occurrences: Iterable[Occurrence], only_counted: bool) -> list[Occurrence]:
    return [o for o in occurrences if o.counts_in_totals or not only_counted]


def calculate_totals(occurrences: Iterable[Occurrence], *, only_counted: bool = True) -> Totals:
    """
    Month ("YYYY-MM"), week (Monday ISO date) and global sums of occurrence values.

    With `only_counted` (default), categories whose policy keeps them out of
    totals (recurring charges) are skipped.
    """
    by_month: dict[str, MonthTotal] = {}
    by_week: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    total = Decimal("0")
    for o in _counted(occurrences, only_counted):
        mk = _year_month(o.adjusted_date)
        bucket = by_month.setdefault(mk, MonthTotal())
        bucket.total += o.value
        cat = o.category.value
        bucket.categories[cat] = bucket.categories.get(cat, Decimal("0")) + o.value
        by_week[week_start(o.adjusted_date).isoformat()] += o.value
        total += o.value
    return Totals(by_month=by_month, by_week=dict(by_week), total=money_2dp(total))


def category_totals(
    occurrences: Iterable[Occurrence],
    *,
    year: Optional[int] = None,
    month: Optional[int] = None,
    only_counted: bool = True,
) -> dict[str, Decimal]:
    out: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for o in _counted(occurrences, only_counted):
        d = o.adjusted_date
        if year is not None and d.year != year:
            continue
        if month is not None and d.month != month:
            continue
        out[o.category.value] += o.value
    return {k: money_2dp(v) for k, v in sorted(out.items())}


def occurrences_in_month(occurrences: Iterable[Occurrence], year: int, month: int) -> list[Occurrence]:
    return [o for o in occurrences if o.adjusted_date.year == year and o.adjusted_date.month == month]


def remaining_to_pay(
    occurrences: Iterable[Occurrence],
    year: int,
    month: int,
    today: dt.date,
    *,
    only_counted: bool = True,
) -> Decimal:
    """Month total minus what falls strictly before `today` (a local calendar day)."""
    month_items = _counted(occurrences_in_month(occurrences, year, month), only_counted)
    total = sum((o.value for o in month_items), Decimal("0"))
    paid = sum((o.value for o in month_items if o.adjusted_date < today), Decimal("0"))
    return money_2dp(total - paid)


def filter_occurrences(
    occurrences: Iterable[Occurrence],
    *,
    query: str = "",
    disabled: Collection[str] = (),
) -> list[Occurrence]:
    """Category toggles plus a case-insensitive search over name, description and category."""
    q = (query or "").strip().casefold()
    off = {str(c).strip().lower() for c in disabled}
    out: list[Occurrence] = []
    for o in occurrences:
        if o.category.value in off:
            continue
        if q:
            haystack = " ".join([o.full_name, o.record.description, o.category.value, o.provider]).casefold()
            if q not in haystack:
                continue
        out.append(o)
    return out


def month_span(start: dt.date, end: dt.date) -> list[tuple[int, int]]:
    """(year, month) pairs from the month of `start` through the month of `end`, inclusive."""
    if end < start:
        return []
    out: list[tuple[int, int]] = []
    y, m = start.year, start.month
    while (y, m) <= (end.year, end.month):
        out.append((y, m))
        y, m = add_months(y, m, 1)
    return out


def agenda_months(today: dt.date, horizon: Optional[dt.date], *, lookback_months: int = 13) -> list[tuple[int, int]]:
    """Month tabs: from `lookback_months` before today up to the horizon month (at least today's month)."""
    y, m = add_months(today.year, today.month, -lookback_months)
    end = horizon if horizon is not None and horizon > today else today
    return month_span(dt.date(y, m, 1), end)


def total_balance(accounts: Iterable[AccountBalance]) -> Decimal:
    return money_2dp(sum((a.balance for a in accounts), Decimal("0")))


def balances_by_owner(accounts: Iterable[AccountBalance]) -> dict[str, list[AccountBalance]]:
    grouped: dict[str, list[AccountBalance]] = {}
    for a in accounts:
        grouped.setdefault(a.owner, []).append(a)
    return grouped


def available_balance(accounts: Iterable[AccountBalance], remaining: Decimal) -> Decimal:
    """Balance left after paying what remains of the month."""
    return money_2dp(total_balance(accounts) - Decimal(remaining))
