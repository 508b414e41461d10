from __future__ import annotations

import csv
import io
from abc import ABC, abstractmethod
from typing import Any, Iterable


def detect_delimiter(header_line: str) -> str:
    # Google Sheets exports use commas; PT-BR spreadsheets save with semicolons.
    return "," if "," in (header_line or "") else ";"


def _clean(value: Any) -> str:
    s = "" if value is None else str(value).strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        s = s[1:-1].strip()
    return s


def read_sheet_rows(content: str) -> tuple[list[str], list[dict[str, str]]]:
    text = (content or "").lstrip("\ufeff").strip()
    if not text:
        return [], []
    first_line = text.splitlines()[0]
    f = io.StringIO(text)
    reader = csv.reader(f, delimiter=detect_delimiter(first_line), quotechar='"', skipinitialspace=True)
    headers: list[str] = []
    rows: list[dict[str, str]] = []
    for values in reader:
        if not headers:
            headers = [_clean(h) for h in values]
            continue
        if not any((v or "").strip() for v in values):
            continue
        row: dict[str, str] = {}
        for i, h in enumerate(headers):
            if not h:
                continue
            row[h] = _clean(values[i]) if i < len(values) else ""
        rows.append(row)
    return headers, rows


class SheetImporter(ABC):
    sheet_name: str

    @abstractmethod
    def detect(self, headers: Iterable[str]) -> bool: ...

    @abstractmethod
    def parse_rows(self, *, rows: list[dict[str, str]]) -> list[Any]: ...
