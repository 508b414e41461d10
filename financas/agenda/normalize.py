from __future__ import annotations

import calendar
import datetime as dt
import json
import re
from decimal import Decimal, InvalidOperation
from hashlib import sha256
from typing import Any, Optional

from financas.agenda.errors import InvalidDate

MIN_RECORD_YEAR = 1900
MAX_RECORD_YEAR = 2100

_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)")
_LOCALE_NUMBER_RE = re.compile(r"^[+-]?[\d.,]*\d[\d.,]*$")


def strip_quotes(value: str) -> str:
    s = (value or "").strip()
    if len(s) >= 1 and s.startswith('"'):
        s = s[1:]
    if len(s) >= 1 and s.endswith('"'):
        s = s[:-1]
    return s.strip()


def parse_locale_number(value: Any) -> Decimal:
    """
    Parse "1.234,56" and "1,234.56" alike: the rightmost of "," / "." is the decimal
    separator and the other one is dropped. Empty or non-numeric input yields 0.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    s = strip_quotes(str(value)).replace(" ", "")
    if not s:
        return Decimal("0")
    if "," in s and s.rfind(",") > s.rfind("."):
        s = s.replace(".", "").replace(",", ".")
    else:
        s = s.replace(",", "")
    m = _LEADING_NUMBER_RE.match(s)
    if not m:
        return Decimal("0")
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return Decimal("0")


def looks_numeric(value: str) -> bool:
    s = (value or "").strip().replace(" ", "")
    return bool(s) and bool(_LOCALE_NUMBER_RE.match(s))


def parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse of a spreadsheet cell ("3", " 12 ", "2.0" -> 2); None when absent."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    s = strip_quotes(str(value))
    m = re.match(r"^[+-]?\d+", s)
    if not m:
        return None
    return int(m.group(0))


def _date_parts(value: str) -> tuple[int, int, int]:
    s = strip_quotes(value).split(" ")[0].split("T")[0]
    if "/" in s:
        parts = s.split("/")
        order = (2, 1, 0)  # DD/MM/YYYY
    else:
        parts = s.split("-")
        order = (0, 1, 2)  # YYYY-MM-DD
    if len(parts) != 3:
        raise InvalidDate(f"Invalid date: {value!r}")
    try:
        y, m, d = (int(parts[i]) for i in order)
    except ValueError:
        raise InvalidDate(f"Invalid date: {value!r}") from None
    return y, m, d


def parse_date_components(value: Any) -> tuple[int, int, int]:
    """Validated (year, month, day) from "DD/MM/YYYY" or "YYYY-MM-DD"; the day may exceed the month length."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidDate("Missing date")
    y, m, d = _date_parts(value)
    if not (MIN_RECORD_YEAR <= y <= MAX_RECORD_YEAR) or not (1 <= m <= 12) or not (1 <= d <= 31):
        raise InvalidDate(f"Date component out of range: {value!r} -> {(y, m, d)}")
    return y, m, d


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> dt.date:
    """Date with `day` reduced to the last valid day of the month (Feb 30 -> Feb 28/29)."""
    return dt.date(year, month, min(day, days_in_month(year, month)))


def parse_date(value: Any) -> dt.date:
    y, m, d = parse_date_components(value)
    return clamped_date(y, m, d)


def normalize_fixed_date(date_str: str) -> dt.date:
    """Clamp an ISO "YYYY-MM-DD" string whose day may overflow the month."""
    y, m, d = (int(p) for p in date_str.split("-")[:3])
    return clamped_date(y, m, d)


def add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + offset
    return idx // 12, idx % 12 + 1


def iso_key(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def stable_occurrence_id(*, category: str, row_number: int, raw: dict[str, Any], index: int) -> str:
    payload = {
        "category": category,
        "row": int(row_number),
        "fields": {str(k): str(v) for k, v in sorted(raw.items(), key=lambda kv: str(kv[0]))},
        "index": int(index),
    }
    b = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return sha256(b).hexdigest()[:16]
