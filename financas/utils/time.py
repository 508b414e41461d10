from __future__ import annotations

import datetime as dt
import os
from functools import lru_cache
from zoneinfo import ZoneInfo

UTC = dt.timezone.utc


def utcnow() -> dt.datetime:
    return dt.datetime.now(UTC)


@lru_cache(maxsize=32)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def ui_timezone_name() -> str:
    return os.environ.get("UI_TIMEZONE", "America/Sao_Paulo").strip() or "America/Sao_Paulo"


def local_now(tz_name: str | None = None) -> dt.datetime:
    return utcnow().astimezone(_zone(tz_name or ui_timezone_name()))


def local_today(tz_name: str | None = None) -> dt.date:
    """Calendar day at local midnight in the UI timezone."""
    return local_now(tz_name).date()
