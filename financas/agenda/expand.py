"""
Record expansion: one source row becomes the dated occurrences it stands for.

Each category's policy picks the expansion shape (single date, installments,
annual, monthly, interval-driven or invoice) and the business-day adjustment.
Expansion never raises for a single bad row: the row is skipped and a warning
is returned (and logged) so the rest of the batch keeps going.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from financas.agenda.business_days import adjust
from financas.agenda.categories import Category, Expansion, policy_for
from financas.agenda.currency import ConversionSettings, parse_value
from financas.agenda.errors import (
    AgendaError,
    InvalidDate,
    InvalidEndSpec,
    InvalidInstallmentCount,
    InvalidInterval,
)
from financas.agenda.models import ExpansionResult, Occurrence, OccurrenceSlot, SourceRecord
from financas.agenda.normalize import (
    add_months,
    clamped_date,
    iso_key,
    normalize_fixed_date,
    parse_date_components,
    parse_int,
    stable_occurrence_id,
    strip_quotes,
)
from financas.utils.money import money_2dp

logger = logging.getLogger(__name__)

MIN_INSTALLMENTS = 1
MAX_INSTALLMENTS = 1000
MIN_INTERVAL_MONTHS = 1
MAX_INTERVAL_MONTHS = 120
MIN_INTERVAL_WEEKS = 1
MAX_INTERVAL_WEEKS = 520
MIN_REPETITIONS = 1
MAX_REPETITIONS = 1000

_WEEK_TOKEN_RE = re.compile(r"^(\d+)\s*(?:week|weeks|semana|semanas)$", re.IGNORECASE)
_INT_TOKEN_RE = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class YearWindow:
    """Years covered by open-ended (annual/monthly) recurrences."""

    start: int = 2024
    end: int = 2030

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Invalid year window {self.start}..{self.end}")

    def years(self) -> range:
        return range(self.start, self.end + 1)

    @property
    def default_terminal(self) -> dt.date:
        return dt.date(self.end, 12, 31)


@dataclass(frozen=True)
class Interval:
    step: int
    weekly: bool = False

    @property
    def one_time(self) -> bool:
        return self.step == 0


@dataclass(frozen=True)
class EndSpec:
    max_occurrences: Optional[int] = None
    terminal: Optional[dt.date] = None


def parse_installments(raw: str) -> int:
    if not (raw or "").strip():
        return 1
    n = parse_int(raw)
    if n is None or n == 0:
        # blank, zero or non-numeric cells count as a single payment
        return 1
    if not (MIN_INSTALLMENTS <= n <= MAX_INSTALLMENTS):
        raise InvalidInstallmentCount(f"Installments out of range [{MIN_INSTALLMENTS}, {MAX_INSTALLMENTS}]: {n}")
    return n


def parse_interval(raw: str) -> Interval:
    s = strip_quotes(raw or "")
    if not s:
        return Interval(0)
    m = _WEEK_TOKEN_RE.match(s.replace(" ", ""))
    if m:
        weeks = int(m.group(1))
        if weeks == 0:
            return Interval(0)
        if not (MIN_INTERVAL_WEEKS <= weeks <= MAX_INTERVAL_WEEKS):
            raise InvalidInterval(f"Weekly interval out of range [{MIN_INTERVAL_WEEKS}, {MAX_INTERVAL_WEEKS}]: {weeks}")
        return Interval(weeks, weekly=True)
    n = parse_int(s)
    if n is None:
        raise InvalidInterval(f"Invalid interval: {raw!r}")
    if n == 0:
        return Interval(0)
    if not (MIN_INTERVAL_MONTHS <= n <= MAX_INTERVAL_MONTHS):
        raise InvalidInterval(f"Interval out of range [{MIN_INTERVAL_MONTHS}, {MAX_INTERVAL_MONTHS}]: {n}")
    return Interval(n)


def parse_end(raw: str) -> EndSpec:
    """
    End is either a repetition count (1..1000) or a terminal date in either
    supported format. Raises InvalidEndSpec for anything else.
    """
    s = strip_quotes(raw or "")
    if not s:
        return EndSpec()
    if _INT_TOKEN_RE.match(s):
        n = int(s)
        if MIN_REPETITIONS <= n <= MAX_REPETITIONS:
            return EndSpec(max_occurrences=n)
        raise InvalidEndSpec(f"Repetition count out of range [{MIN_REPETITIONS}, {MAX_REPETITIONS}]: {n}")
    if "/" in s or "-" in s:
        try:
            y, m, d = parse_date_components(s)
        except InvalidDate as e:
            raise InvalidEndSpec(f"Invalid End date {raw!r}: {e}") from e
        return EndSpec(terminal=clamped_date(y, m, d))
    raise InvalidEndSpec(f"Invalid End value: {raw!r}")


def _single(y: int, m: int, d: int) -> list[OccurrenceSlot]:
    return [OccurrenceSlot(iso_key(y, m, d))]


def _installments(y: int, m: int, d: int, count: int) -> list[OccurrenceSlot]:
    out: list[OccurrenceSlot] = []
    for i in range(count):
        ty, tm = add_months(y, m, i)
        out.append(OccurrenceSlot(clamped_date(ty, tm, d).isoformat(), i + 1, count))
    return out


def _annual(m: int, d: int, window: YearWindow) -> list[OccurrenceSlot]:
    return [OccurrenceSlot(clamped_date(year, m, d).isoformat()) for year in window.years()]


def _monthly(anchor: dt.date, d: int, window: YearWindow) -> list[OccurrenceSlot]:
    out: list[OccurrenceSlot] = []
    for year in window.years():
        for month in range(1, 13):
            candidate = clamped_date(year, month, d)
            if candidate >= anchor:
                out.append(OccurrenceSlot(candidate.isoformat()))
    return out


def _interval(
    y: int,
    m: int,
    d: int,
    interval: Interval,
    end: EndSpec,
    window: YearWindow,
) -> list[OccurrenceSlot]:
    anchor = clamped_date(y, m, d)
    if interval.one_time:
        return [OccurrenceSlot(anchor.isoformat())]
    terminal = end.terminal or window.default_terminal
    out: list[OccurrenceSlot] = []
    k = 0
    while True:
        if end.max_occurrences is not None and len(out) >= end.max_occurrences:
            break
        if interval.weekly:
            current = anchor + dt.timedelta(weeks=interval.step * k)
        else:
            # every step is measured from the anchor so short months do not drift the day
            ty, tm = add_months(y, m, interval.step * k)
            current = clamped_date(ty, tm, d)
        if current > terminal:
            break
        out.append(OccurrenceSlot(current.isoformat()))
        k += 1
    return out


def expand_slots(
    record: SourceRecord,
    *,
    window: YearWindow,
    warnings: Optional[list[str]] = None,
) -> list[OccurrenceSlot]:
    """
    Dates a record expands to, before business-day adjustment.
    Raises AgendaError subclasses for rows that must be skipped; soft problems
    (an unusable End column) are appended to `warnings`.
    """
    policy = policy_for(record.category)
    y, m, d = parse_date_components(record.date_raw)
    installments = parse_installments(record.installments_raw)

    if policy.expansion in (Expansion.SINGLE, Expansion.INVOICE):
        return _single(y, m, d)
    if policy.expansion == Expansion.INSTALLMENTS:
        return _installments(y, m, d, installments)
    if policy.expansion == Expansion.ANNUAL:
        return _annual(m, d, window)
    if policy.expansion == Expansion.MONTHLY:
        return _monthly(clamped_date(y, m, d), d, window)
    if policy.expansion == Expansion.INTERVAL:
        interval = parse_interval(record.interval_raw)
        end = EndSpec()
        if not interval.one_time:
            try:
                end = parse_end(record.end_raw)
            except InvalidEndSpec as e:
                msg = f"{_where(record)}: {e}; using default end {window.default_terminal.isoformat()}"
                logger.warning("%s", msg)
                if warnings is not None:
                    warnings.append(msg)
        return _interval(y, m, d, interval, end, window)
    raise AgendaError(f"Unsupported expansion {policy.expansion!r}")


def _where(record: SourceRecord) -> str:
    who = record.name or "item"
    return f"{record.category.value} row {record.row_number} ({who})"


SuppressFn = Callable[[SourceRecord, dt.date], bool]


def expand_record(
    record: SourceRecord,
    *,
    window: YearWindow = YearWindow(),
    rates: Optional[Mapping[str, Any]] = None,
    settings: Optional[ConversionSettings] = None,
    suppress: Optional[SuppressFn] = None,
) -> ExpansionResult:
    """
    Expand, adjust and value one record. Pure: no I/O besides logging.

    `suppress(record, adjusted_date)` lets the caller drop individual
    occurrences (cross-category deduplication of recurring charges).
    """
    warnings: list[str] = []
    try:
        slots = expand_slots(record, window=window, warnings=warnings)
    except AgendaError as e:
        msg = f"Skipping {_where(record)}: {type(e).__name__}: {e}"
        logger.warning("%s", msg)
        return ExpansionResult([], warnings + [msg])

    settings = settings or ConversionSettings()
    try:
        currency, original_value = parse_value(record.value_raw, base=settings.base_currency)
        value = settings.convert(original_value, currency, rates or {}, category=record.category.value)
        value = money_2dp(value)
    except ArithmeticError as e:
        msg = f"Skipping {_where(record)}: unusable value {record.value_raw!r} ({type(e).__name__})"
        logger.warning("%s", msg)
        return ExpansionResult([], warnings + [msg])

    policy = policy_for(record.category)
    occurrences: list[Occurrence] = []
    for idx, slot in enumerate(slots):
        adjusted = adjust(normalize_fixed_date(slot.date_str), policy.adjustment)
        if suppress is not None and suppress(record, adjusted):
            continue
        occurrences.append(
            Occurrence(
                record=record,
                date_str=slot.date_str,
                adjusted_date=adjusted,
                current_installment=slot.current_installment,
                total_installments=slot.total_installments,
                category=record.category,
                value=value,
                currency=currency,
                original_value=original_value,
                id=stable_occurrence_id(
                    category=record.category.value,
                    row_number=record.row_number,
                    raw=record.raw,
                    index=idx,
                ),
            )
        )
    return ExpansionResult(occurrences, warnings)


def expand(record: SourceRecord, **kwargs: Any) -> list[Occurrence]:
    return expand_record(record, **kwargs).occurrences


def is_invoice(category: Category) -> bool:
    return policy_for(category).expansion == Expansion.INVOICE

