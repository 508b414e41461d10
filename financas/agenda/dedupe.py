from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from financas.agenda.categories import policy_for
from financas.agenda.models import InvoiceRecord, Occurrence, PurchaseRecord, SourceRecord
from financas.agenda.normalize import looks_numeric, parse_locale_number

logger = logging.getLogger(__name__)


class DedupeMode(str, Enum):
    MONTH = "month"
    DATE = "date"


class RecurringDeduper:
    """
    Suppresses a recurring charge when the same beneficiary was already ingested
    under another category in the same month (MONTH) or on the same adjusted date (DATE).
    """

    def __init__(self, mode: DedupeMode | str = DedupeMode.MONTH):
        self.mode = DedupeMode(mode)
        self._seen: dict[tuple[str, Any], set[str]] = defaultdict(set)
        self.suppressed = 0

    def _key(self, name: str, day: dt.date) -> tuple[str, Any]:
        if self.mode == DedupeMode.DATE:
            return name, day
        return name, (day.year, day.month)

    def add(self, occurrence: Occurrence) -> None:
        self._seen[self._key(occurrence.name, occurrence.adjusted_date)].add(occurrence.category.value)

    def add_all(self, occurrences: Iterable[Occurrence]) -> None:
        for o in occurrences:
            self.add(o)

    def should_suppress(self, record: SourceRecord, adjusted_date: dt.date) -> bool:
        if not policy_for(record.category).dedupe_against_others:
            return False
        categories = self._seen.get(self._key(record.name, adjusted_date))
        if not categories:
            return False
        if any(c != record.category.value for c in categories):
            self.suppressed += 1
            logger.debug(
                "Suppressed %s occurrence of %r on %s (already ingested as %s)",
                record.category.value,
                record.name,
                adjusted_date.isoformat(),
                ", ".join(sorted(categories)),
            )
            return True
        return False

    def __call__(self, record: SourceRecord, adjusted_date: dt.date) -> bool:
        return self.should_suppress(record, adjusted_date)


def _is_weekly(o: Occurrence) -> Optional[bool]:
    raw = (o.record.interval_raw or "").strip().lower()
    if not raw:
        return None
    return "week" in raw or "semana" in raw


def _compare_fields(o: Occurrence) -> dict[str, Any]:
    r = o.record
    fields: dict[str, Any] = {
        "name": r.beneficiary,
        "description": r.description,
        "value": o.value,
        "currency": o.currency,
        "original_value": o.original_value,
        "installments": r.installments_raw,
        "current_installment": o.current_installment,
        "total_installments": o.total_installments,
        "interval": r.interval_raw,
        "is_weekly": _is_weekly(o),
        "end": r.end_raw,
    }
    if isinstance(r, PurchaseRecord):
        fields["item"] = r.item
        fields["shop"] = r.shop
    if isinstance(r, InvoiceRecord):
        fields["client"] = r.client
        fields["provider"] = r.provider
    return fields


def normalize_field(value: Any) -> Any:
    """Numbers compare as Decimals (locale-aware for strings); other text case-insensitively."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    s = str(value).strip()
    if not s:
        return None
    if looks_numeric(s):
        return parse_locale_number(s)
    return s.casefold()


def are_duplicates(a: Occurrence, b: Occurrence) -> bool:
    if a.id == b.id:
        return False
    # Same record on different dates is just the recurrence, not a duplicate.
    if a.date_str != b.date_str:
        return False
    if a.category != b.category:
        return False
    fa, fb = _compare_fields(a), _compare_fields(b)
    for key in fa.keys() | fb.keys():
        va, vb = normalize_field(fa.get(key)), normalize_field(fb.get(key))
        if va is None and vb is None:
            continue
        if (va is None) != (vb is None):
            return False
        if va != vb:
            return False
    return True


def find_duplicates(
    occurrences: Iterable[Occurrence],
    invoices: Iterable[Occurrence] = (),
) -> list[list[Occurrence]]:
    items = list(occurrences) + list(invoices)
    groups: list[list[Occurrence]] = []
    processed: set[str] = set()
    for i, first in enumerate(items):
        if first.id in processed:
            continue
        group = [first]
        for other in items[i + 1 :]:
            if other.id in processed:
                continue
            if are_duplicates(first, other):
                group.append(other)
                processed.add(other.id)
        if len(group) > 1:
            processed.add(first.id)
            groups.append(sorted(group, key=lambda o: o.adjusted_date))
    return groups


def format_duplicate_groups(groups: list[list[Occurrence]]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for group in groups:
        first = group[0]
        out.append(
            {
                "id": "-".join(o.id for o in group),
                "name": first.full_name,
                "category": first.category.value,
                "is_invoice": isinstance(first.record, InvoiceRecord),
                "count": len(group),
                "items": [
                    {
                        "id": o.id,
                        "date": o.adjusted_date.isoformat(),
                        "value": str(o.value),
                        "currency": o.currency,
                        "original_value": str(o.original_value),
                    }
                    for o in group
                ],
            }
        )
    return out
