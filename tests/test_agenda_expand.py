from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from financas.agenda.categories import Category
from financas.agenda.errors import InvalidEndSpec, InvalidInterval
from financas.agenda.expand import (
    EndSpec,
    Interval,
    YearWindow,
    expand,
    expand_record,
    parse_end,
    parse_installments,
    parse_interval,
)
from financas.agenda.models import Occurrence, record_from_row


def _rec(category: str, row_number: int = 2, **cols: str):
    return record_from_row(category, cols, row_number=row_number)


def test_installments_clamp_day_and_label() -> None:
    rec = _rec("financiamentos", Beneficiary="Carro", Date="31/01/2024", Value="100", Installments="3")
    occ = expand(rec)
    assert [o.date_str for o in occ] == ["2024-01-31", "2024-02-29", "2024-03-31"]
    # 2024-03-31 is Easter Sunday; financing moves forward.
    assert [o.adjusted_date for o in occ] == [dt.date(2024, 1, 31), dt.date(2024, 2, 29), dt.date(2024, 4, 1)]
    assert [(o.current_installment, o.total_installments) for o in occ] == [(1, 3), (2, 3), (3, 3)]


def test_blank_or_zero_installments_mean_one() -> None:
    assert parse_installments("") == 1
    assert parse_installments("0") == 1
    assert parse_installments("x") == 1
    assert parse_installments("12") == 12


def test_installments_out_of_range_skips_row() -> None:
    rec = _rec("emprestimos", Beneficiary="Banco", Date="2024-01-10", Value="10", Installments="1001")
    res = expand_record(rec)
    assert res.occurrences == []
    assert res.skipped
    assert "InvalidInstallmentCount" in res.warnings[0]


def test_single_keeps_overflowing_date_string() -> None:
    rec = _rec("boletos", Beneficiary="Seguro", Date="2024-02-30", Value="100")
    (o,) = expand(rec)
    assert o.date_str == "2024-02-30"
    assert o.adjusted_date == dt.date(2024, 2, 29)
    assert o.current_installment is None and o.total_installments is None


def test_boletos_forward_and_impostos_backward() -> None:
    bol = expand(_rec("boletos", Beneficiary="Luz", Date="13/01/2024", Value="1"))[0]
    imp = expand(_rec("impostos", Beneficiary="DAS", Date="13/01/2024", Value="1"))[0]
    assert bol.adjusted_date == dt.date(2024, 1, 15)
    assert imp.adjusted_date == dt.date(2024, 1, 12)


def test_compras_are_not_adjusted_and_names_truncate() -> None:
    rec = _rec("compras", Item="Notebook Gamer Ultra Slim 15", Shop="Loja", Date="2024-01-13", Value="1")
    (o,) = expand(rec)
    assert o.adjusted_date == dt.date(2024, 1, 13)
    assert o.name == "Notebook Gamer Ultra..."
    assert o.full_name == "Notebook Gamer Ultra Slim 15"


def test_annual_clamps_leap_day_per_year() -> None:
    rec = _rec("anuais", Beneficiary="IPTU", Date="29/02/2024", Value="1")
    occ = expand(rec, window=YearWindow(2024, 2026))
    assert [o.date_str for o in occ] == ["2024-02-29", "2025-02-28", "2026-02-28"]
    assert occ[-1].adjusted_date == dt.date(2026, 2, 27)


def test_monthly_starts_at_anchor() -> None:
    rec = _rec("recorrentes", Beneficiary="Academia", Date="2024-10-15", Value="1")
    occ = expand(rec, window=YearWindow(2024, 2024))
    assert [o.date_str for o in occ] == ["2024-10-15", "2024-11-15", "2024-12-15"]


def test_monthly_clamps_short_months() -> None:
    rec = _rec("recorrentes", Beneficiary="Aluguel", Date="2024-01-31", Value="1")
    occ = expand(rec, window=YearWindow(2024, 2024))
    assert len(occ) == 12
    assert occ[1].date_str == "2024-02-29"
    assert occ[3].date_str == "2024-04-30"


def test_interval_zero_is_one_time() -> None:
    rec = _rec("periodicos", Beneficiary="IPVA", Date="2024-05-10", Value="1", Interval="0", End="5")
    assert len(expand(rec)) == 1


def test_interval_with_repetition_cap() -> None:
    rec = _rec("periodicos", Beneficiary="Curso", Date="2024-01-31", Value="1", Interval="1", End="3")
    occ = expand(rec)
    assert [o.date_str for o in occ] == ["2024-01-31", "2024-02-29", "2024-03-31"]


def test_interval_with_terminal_date() -> None:
    rec = _rec("individual", Beneficiary="Terapia", Date="2024-01-01", Value="1", Interval="2 weeks", End="01/02/2024")
    occ = expand(rec)
    assert [o.date_str for o in occ] == ["2024-01-01", "2024-01-15", "2024-01-29"]


def test_interval_every_n_months_until_window_end() -> None:
    rec = _rec("periodicos", Beneficiary="Dentista", Date="2024-03-10", Value="1", Interval="6")
    occ = expand(rec, window=YearWindow(2024, 2025))
    assert [o.date_str for o in occ] == ["2024-03-10", "2024-09-10", "2025-03-10", "2025-09-10"]


def test_invalid_end_falls_back_to_default_terminal() -> None:
    rec = _rec("periodicos", Beneficiary="Revista", Date="2024-10-01", Value="1", Interval="1", End="soon")
    res = expand_record(rec, window=YearWindow(2024, 2024))
    assert len(res.occurrences) == 3
    assert len(res.warnings) == 1
    assert not res.skipped


def test_parse_interval_and_end() -> None:
    assert parse_interval("") == Interval(0)
    assert parse_interval("3") == Interval(3)
    assert parse_interval("2semanas") == Interval(2, weekly=True)
    assert parse_interval("1 week") == Interval(1, weekly=True)
    with pytest.raises(InvalidInterval):
        parse_interval("121")
    with pytest.raises(InvalidInterval):
        parse_interval("600 weeks")
    assert parse_end("") == EndSpec()
    assert parse_end("12") == EndSpec(max_occurrences=12)
    assert parse_end("2024-12-31") == EndSpec(terminal=dt.date(2024, 12, 31))
    with pytest.raises(InvalidEndSpec):
        parse_end("0")
    with pytest.raises(InvalidEndSpec):
        parse_end("later")


def test_bad_date_skips_row_with_warning() -> None:
    res = expand_record(_rec("boletos", Beneficiary="X", Date="31-31-2024", Value="1"))
    assert res.occurrences == []
    assert "InvalidDate" in res.warnings[0]


def test_foreign_value_is_converted() -> None:
    rec = _rec("compras", Item="Fone", Date="2024-03-05", Value="US$ 10,00")
    (o,) = expand(rec, rates={"USD": Decimal("0.2")})
    assert o.currency == "USD"
    assert o.original_value == Decimal("10.00")
    assert o.value == Decimal("51.90")


def test_ids_are_deterministic_and_unique() -> None:
    rec = _rec("recorrentes", Beneficiary="Academia", Date="2024-01-05", Value="1")
    a = [o.id for o in expand(rec, window=YearWindow(2024, 2024))]
    b = [o.id for o in expand(rec, window=YearWindow(2024, 2024))]
    assert a == b
    assert len(set(a)) == len(a)
    other = _rec("recorrentes", row_number=3, Beneficiary="Academia", Date="2024-01-05", Value="1")
    assert expand(other, window=YearWindow(2024, 2024))[0].id != a[0]


def test_occurrence_rejects_bad_installment_label() -> None:
    rec = _rec("boletos", Beneficiary="X", Date="2024-01-10", Value="1")
    with pytest.raises(ValueError):
        Occurrence(
            record=rec,
            date_str="2024-01-10",
            adjusted_date=dt.date(2024, 1, 10),
            current_installment=2,
            total_installments=1,
            category=Category.BOLETOS,
            value=Decimal("1"),
            currency="BRL",
            original_value=Decimal("1"),
            id="x",
        )


def test_zero_weeks_interval_is_one_time() -> None:
    assert parse_interval("0week") == Interval(0)
    rec = _rec("periodicos", Beneficiary="Faxina", Date="2025-03-05", Value="80", Interval="0 weeks")
    res = expand_record(rec, window=YearWindow(2025, 2025))
    assert [o.date_str for o in res.occurrences] == ["2025-03-05"]
    assert res.warnings == []


def test_bad_rate_keeps_original_value() -> None:
    rec = _rec("compras", Item="Fone", Shop="Loja", Date="2025-02-10", Value="US$ 10")
    (o,) = expand(rec, rates={"USD": "n/a"})
    assert o.currency == "USD"
    assert o.value == Decimal("10.00")


def test_value_beyond_decimal_precision_skips_row() -> None:
    rec = _rec("boletos", Beneficiary="Gigante", Date="2025-01-06", Value="1" * 30)
    res = expand_record(rec)
    assert res.occurrences == []
    assert res.skipped
    assert "unusable value" in res.warnings[0]
