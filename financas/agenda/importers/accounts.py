from __future__ import annotations

from typing import Iterable

from financas.agenda.importers.base import SheetImporter
from financas.agenda.models import AccountBalance, column_value
from financas.agenda.normalize import parse_locale_number


class AccountsSheetImporter(SheetImporter):
    sheet_name = "accounts"

    def detect(self, headers: Iterable[str]) -> bool:
        hs = {h.strip().lower() for h in headers}
        return {"account", "bank", "value"}.issubset(hs)

    def parse_rows(self, *, rows: list[dict[str, str]]) -> list[AccountBalance]:
        out: list[AccountBalance] = []
        for r in rows:
            owner = column_value(r, "account")
            bank = column_value(r, "bank")
            if not owner and not bank:
                continue
            out.append(AccountBalance(owner=owner, bank=bank, balance=parse_locale_number(column_value(r, "value"))))
        return out
