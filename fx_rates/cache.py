from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from fx_rates.models import RateTable

logger = logging.getLogger(__name__)


class RateCache:
    """
    Last fetched rate table with its fetch time, optionally persisted as JSON.
    Single writer, many readers.
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        path: Optional[Path] = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = int(ttl_seconds)
        self.path = Path(path) if path else None
        self._clock = clock
        self._lock = threading.Lock()
        self._table: Optional[RateTable] = None
        self._fetched_at: Optional[float] = None
        if self.path is not None:
            self._load()

    def _load(self) -> None:
        assert self.path is not None
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self._table = RateTable.from_dict(data["table"])
            self._fetched_at = float(data["fetched_at"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable rate cache %s: %s", self.path, e)
            self._table, self._fetched_at = None, None

    def _save(self) -> None:
        assert self.path is not None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"fetched_at": self._fetched_at, "table": self._table.to_dict() if self._table else None}
        self.path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    def is_fresh(self) -> bool:
        with self._lock:
            if self._table is None or self._fetched_at is None:
                return False
            return (self._clock() - self._fetched_at) < self.ttl_seconds

    def get(self, *, allow_stale: bool = False) -> Optional[RateTable]:
        if not allow_stale and not self.is_fresh():
            return None
        with self._lock:
            return self._table

    def set(self, table: RateTable) -> None:
        with self._lock:
            self._table = table
            self._fetched_at = self._clock()
            if self.path is not None:
                self._save()

    def clear(self) -> None:
        with self._lock:
            self._table, self._fetched_at = None, None
            if self.path is not None and self.path.exists():
                self.path.unlink()
