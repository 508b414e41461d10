from __future__ import annotations

from typing import Iterable, Optional

from financas.agenda.categories import INGEST_ORDER, Category
from financas.agenda.importers.accounts import AccountsSheetImporter
from financas.agenda.importers.base import SheetImporter
from financas.agenda.importers.records import CategorySheetImporter


def default_importers() -> list[SheetImporter]:
    importers: list[SheetImporter] = [CategorySheetImporter(c) for c in INGEST_ORDER]
    importers.append(CategorySheetImporter(Category.NOTAS))
    importers.append(AccountsSheetImporter())
    return importers


def importer_for(sheet_name: str, importers: Optional[Iterable[SheetImporter]] = None) -> Optional[SheetImporter]:
    key = (sheet_name or "").strip().lower()
    for imp in importers or default_importers():
        if imp.sheet_name == key:
            return imp
    return None
