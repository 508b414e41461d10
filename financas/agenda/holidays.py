"""Brazilian national bank holidays, including the Easter-based movable feasts."""

from __future__ import annotations

import datetime as dt
from functools import lru_cache

from financas.agenda.errors import OutOfRange

MIN_YEAR = 1
MAX_YEAR = 9999

FIXED_HOLIDAYS: dict[tuple[int, int], str] = {
    (1, 1): "Confraternização Universal",
    (4, 21): "Tiradentes",
    (5, 1): "Dia do Trabalho",
    (9, 7): "Independência do Brasil",
    (10, 12): "Nossa Senhora Aparecida",
    (11, 2): "Finados",
    (11, 15): "Proclamação da República",
    (11, 20): "Dia da Consciência Negra",
    (12, 25): "Natal",
}

# (offset in days from Easter Sunday, name)
MOVABLE_FEASTS: tuple[tuple[int, str], ...] = (
    (-47, "Carnaval"),
    (-2, "Sexta-feira Santa"),
    (0, "Páscoa"),
    (60, "Corpus Christi"),
)


def _check_year(year: int) -> None:
    if not (MIN_YEAR <= year <= MAX_YEAR):
        raise OutOfRange(f"Year out of range: {year}")


def easter_sunday(year: int) -> dt.date:
    """Anonymous Gregorian algorithm (Meeus/Jones/Butcher), integer arithmetic only."""
    _check_year(year)
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return dt.date(year, month, day)


@lru_cache(maxsize=256)
def _holidays_for_year(year: int) -> tuple[tuple[dt.date, str], ...]:
    out: dict[dt.date, str] = {dt.date(year, m, d): name for (m, d), name in FIXED_HOLIDAYS.items()}
    easter = easter_sunday(year)
    for offset, name in MOVABLE_FEASTS:
        out[easter + dt.timedelta(days=offset)] = name
    return tuple(sorted(out.items()))


def holidays_for_year(year: int) -> dict[dt.date, str]:
    _check_year(year)
    return dict(_holidays_for_year(year))


def holiday_name(day: dt.date) -> str | None:
    return holidays_for_year(day.year).get(day)


def is_holiday(day: dt.date) -> bool:
    return holiday_name(day) is not None
