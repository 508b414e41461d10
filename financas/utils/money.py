from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    s = str(value).strip()
    if not s:
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


def money_2dp(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_brl(value: Any, digits: int = 2, dash: str = "—") -> str:
    """
    pt-BR currency formatter.

    - `None` -> em dash
    - numeric -> "R$ 1.234,56" (negative: "-R$ 1.234,56")
    - non-numeric string -> returned as-is
    """
    d = to_decimal(value)
    if d is None:
        if value is None:
            return dash
        s = str(value).strip()
        return s if s else dash

    digits = max(0, int(digits))
    q = Decimal(1) if digits == 0 else Decimal("1").scaleb(-digits)
    d = d.quantize(q, rounding=ROUND_HALF_UP)

    sign = "-" if d < 0 else ""
    d_abs = -d if d < 0 else d
    us = f"{d_abs:,.{digits}f}"
    # swap separators: 1,234.56 -> 1.234,56
    br = us.replace(",", "\0").replace(".", ",").replace("\0", ".")
    return f"{sign}R$ {br}"
