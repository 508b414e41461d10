from __future__ import annotations

import datetime as dt
from decimal import Decimal
from pathlib import Path

import pytest

from financas.agenda.expand import expand
from financas.agenda.importers.base import read_sheet_rows
from financas.agenda.importers.records import CategorySheetImporter
from financas.agenda.invoices import (
    abbreviate_name,
    available_years,
    compare_providers,
    group_by_provider_and_month,
    invoice_total,
    invoices_by_provider,
    invoices_for_date,
    provider_tax_summary,
    providers,
    trailing_12_month_invoices,
    trailing_12_month_sum,
    trailing_window,
)
from financas.agenda.taxes import (
    DEFAULT_BRACKETS,
    TaxBracket,
    effective_rate,
    estimate_monthly_tax,
    select_bracket,
)


@pytest.fixture()
def invoices():
    _, rows = read_sheet_rows(Path("tests/fixtures/agenda/notas.csv").read_text(encoding="utf-8"))
    out = []
    for rec in CategorySheetImporter("notas").parse_rows(rows=rows):
        out += expand(rec)
    return out


def test_invoices_are_not_adjusted(invoices) -> None:
    assert [inv.adjusted_date for inv in invoices][:2] == [dt.date(2024, 3, 10), dt.date(2024, 12, 5)]
    assert invoices[0].provider == "VJ"
    assert invoices[0].value == Decimal("10000.00")


def test_provider_and_year_helpers(invoices) -> None:
    assert available_years(invoices) == [2025, 2024]
    assert providers(invoices) == ["BF", "VJ"]
    assert providers(invoices, year=2024) == ["VJ"]
    assert invoice_total(invoices_by_provider(invoices, "VJ")) == Decimal("17000.00")
    assert len(invoices_for_date(invoices, dt.date(2025, 1, 20))) == 1


def test_group_by_provider_and_month(invoices) -> None:
    grouped = group_by_provider_and_month(invoices, 2024)
    assert list(grouped) == ["VJ"]
    assert grouped["VJ"][2] == Decimal("10000.00")
    assert grouped["VJ"][11] == Decimal("5000.00")
    assert sum(grouped["VJ"]) == Decimal("15000.00")


def test_compare_providers(invoices) -> None:
    got = compare_providers(invoices, 2025, "VJ", "BF")
    assert got["VJ"] == Decimal("2000.00")
    assert got["BF"] == Decimal("8000.00")
    assert got["difference"] == Decimal("6000.00")
    assert got["higher"] == "BF"
    assert compare_providers(invoices, 2023, "VJ", "BF")["higher"] == "equal"


def test_trailing_12_month_window(invoices) -> None:
    assert trailing_window(2025, 2) == (dt.date(2024, 2, 1), dt.date(2025, 2, 1))
    # The invoice issued on 2025-02-01 belongs to the target month, not the base.
    assert trailing_12_month_sum(invoices, 2025, 2, "VJ") == Decimal("15000.00")
    assert trailing_12_month_sum(invoices, 2025, 2) == Decimal("23000.00")
    assert trailing_12_month_sum(invoices, 2025, 3, "VJ") == Decimal("17000.00")
    assert [inv.record.client for inv in trailing_12_month_invoices(invoices, 2025, 2, "VJ")] == [
        "Maria da Silva Souza",
        "João Pereira",
    ]


def test_provider_tax_summary(invoices) -> None:
    got = provider_tax_summary(invoices, 2024, {"VJ": Decimal("0.14")})
    assert got["VJ"]["total"] == Decimal("15000.00")
    assert got["VJ"]["tax"] == Decimal("2100.00")


def test_abbreviate_name() -> None:
    assert abbreviate_name("Maria da Silva Souza") == "Maria Souza"
    assert abbreviate_name("  Ana  ") == "Ana"
    assert abbreviate_name("") == ""


def test_estimate_monthly_tax_brackets() -> None:
    assert estimate_monthly_tax(Decimal("0")) == Decimal("0")
    assert estimate_monthly_tax(Decimal("100000")) == Decimal("500.00")
    assert estimate_monthly_tax(Decimal("200000")) == Decimal("1086.67")
    # Above the last ceiling the top bracket still applies.
    assert estimate_monthly_tax(Decimal("5000000")) == Decimal("83500.00")


def test_bracket_selection_uses_first_ceiling_that_covers() -> None:
    assert select_bracket(Decimal("180000")).rate == Decimal("0.06")
    assert select_bracket(Decimal("180000.01")).rate == Decimal("0.112")
    unordered = list(reversed(DEFAULT_BRACKETS))
    assert select_bracket(Decimal("100"), unordered).rate == Decimal("0.06")
    with pytest.raises(ValueError):
        select_bracket(Decimal("1"), [])


def test_tax_is_continuous_at_bracket_boundaries() -> None:
    ordered = list(DEFAULT_BRACKETS)
    for lower, upper in zip(ordered[:4], ordered[1:5]):
        at = lower.ceiling
        assert at * lower.rate - lower.deduction == at * upper.rate - upper.deduction


def test_custom_brackets() -> None:
    flat = [TaxBracket(ceiling=Decimal("1000000"), rate=Decimal("0.10"))]
    assert estimate_monthly_tax(Decimal("120000"), flat) == Decimal("1000.00")
    assert effective_rate(Decimal("120000"), flat) == Decimal("0.10")
