from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from financas.utils.money import format_brl, money_2dp, to_decimal
from financas.utils.time import local_today, ui_timezone_name


def test_format_brl() -> None:
    assert format_brl(Decimal("1234.56")) == "R$ 1.234,56"
    assert format_brl(-1234.5) == "-R$ 1.234,50"
    assert format_brl(0) == "R$ 0,00"
    assert format_brl(1234567, digits=0) == "R$ 1.234.567"
    assert format_brl(None) == "—"
    assert format_brl("n/a") == "n/a"


def test_money_2dp_rounds_half_up() -> None:
    assert money_2dp(Decimal("1.005")) == Decimal("1.01")
    assert money_2dp(Decimal("2.344")) == Decimal("2.34")


def test_to_decimal() -> None:
    assert to_decimal("12.5") == Decimal("12.5")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("") is None
    assert to_decimal("x") is None


def test_ui_timezone_default_and_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("UI_TIMEZONE", raising=False)
    assert ui_timezone_name() == "America/Sao_Paulo"
    monkeypatch.setenv("UI_TIMEZONE", "UTC")
    assert ui_timezone_name() == "UTC"
    assert isinstance(local_today(), dt.date)
