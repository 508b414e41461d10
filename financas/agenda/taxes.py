from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel

from financas.utils.money import money_2dp

MONTHS_PER_YEAR = Decimal("12")


class TaxBracket(BaseModel):
    ceiling: Decimal
    rate: Decimal
    deduction: Decimal = Decimal("0")


# Simples Nacional, Anexo III (services).
DEFAULT_BRACKETS: tuple[TaxBracket, ...] = (
    TaxBracket(ceiling=Decimal("180000"), rate=Decimal("0.06"), deduction=Decimal("0")),
    TaxBracket(ceiling=Decimal("360000"), rate=Decimal("0.112"), deduction=Decimal("9360")),
    TaxBracket(ceiling=Decimal("720000"), rate=Decimal("0.135"), deduction=Decimal("17640")),
    TaxBracket(ceiling=Decimal("1800000"), rate=Decimal("0.16"), deduction=Decimal("35640")),
    TaxBracket(ceiling=Decimal("3600000"), rate=Decimal("0.21"), deduction=Decimal("125640")),
    TaxBracket(ceiling=Decimal("4800000"), rate=Decimal("0.33"), deduction=Decimal("648000")),
)


def select_bracket(revenue: Decimal, brackets: Sequence[TaxBracket] = DEFAULT_BRACKETS) -> TaxBracket:
    """First bracket (by ascending ceiling) that covers `revenue`; the top one above every ceiling."""
    if not brackets:
        raise ValueError("No tax brackets configured")
    ordered = sorted(brackets, key=lambda b: b.ceiling)
    for b in ordered:
        if revenue <= b.ceiling:
            return b
    return ordered[-1]


def effective_rate(revenue: Decimal, brackets: Sequence[TaxBracket] = DEFAULT_BRACKETS) -> Decimal:
    revenue = Decimal(revenue)
    if revenue <= 0:
        return Decimal("0")
    b = select_bracket(revenue, brackets)
    return (revenue * b.rate - b.deduction) / revenue


def estimate_monthly_tax(revenue: Decimal, brackets: Sequence[TaxBracket] = DEFAULT_BRACKETS) -> Decimal:
    """(RBT12 * rate - deduction) / 12 for the bracket covering the trailing 12-month revenue."""
    revenue = Decimal(revenue)
    if revenue <= 0:
        return Decimal("0.00")
    b = select_bracket(revenue, brackets)
    return money_2dp((revenue * b.rate - b.deduction) / MONTHS_PER_YEAR)
