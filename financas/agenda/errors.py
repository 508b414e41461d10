from __future__ import annotations


class AgendaError(Exception):
    pass


class OutOfRange(AgendaError, ValueError):
    """Raised for calendar years the holiday tables cannot represent."""


class InvalidDate(AgendaError, ValueError):
    """Missing or unparseable date, or a component outside its allowed range."""


class InvalidInstallmentCount(AgendaError, ValueError):
    pass


class InvalidInterval(AgendaError, ValueError):
    pass


class InvalidEndSpec(AgendaError, ValueError):
    """End column is neither a repetition count nor a date; the default terminal date is used."""


class CalendarIterationExceeded(AgendaError, RuntimeError):
    """Business-day walk did not converge within the step ceiling."""


class UnknownCurrency(AgendaError, LookupError):
    """Currency detected but missing from the rate table; the original value passes through."""
