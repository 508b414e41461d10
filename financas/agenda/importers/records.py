from __future__ import annotations

import logging
from typing import Iterable

from financas.agenda.categories import Category, policy_for
from financas.agenda.importers.base import SheetImporter
from financas.agenda.models import SourceRecord, record_from_row

logger = logging.getLogger(__name__)

# Spreadsheet row of the first data line (row 1 is the header).
FIRST_DATA_ROW = 2


class CategorySheetImporter(SheetImporter):
    """One payment (or invoice) sheet; every row becomes a SourceRecord of `category`."""

    def __init__(self, category: Category | str):
        self.category = Category(category)
        self.sheet_name = self.category.value

    def required_columns(self) -> set[str]:
        name_field = policy_for(self.category).name_field.lower()
        return {"date", "value", name_field}

    def detect(self, headers: Iterable[str]) -> bool:
        hs = {h.strip().lower() for h in headers}
        return self.required_columns().issubset(hs)

    def parse_rows(self, *, rows: list[dict[str, str]]) -> list[SourceRecord]:
        out: list[SourceRecord] = []
        for i, r in enumerate(rows):
            if not any((v or "").strip() for v in r.values()):
                continue
            out.append(record_from_row(self.category, r, row_number=FIRST_DATA_ROW + i))
        logger.debug("Parsed %d %s rows", len(out), self.sheet_name)
        return out
