from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from financas.agenda.importers import default_importers, importer_for
from financas.agenda.importers.accounts import AccountsSheetImporter
from financas.agenda.importers.base import detect_delimiter, read_sheet_rows
from financas.agenda.importers.records import CategorySheetImporter
from financas.agenda.models import InvoiceRecord, PurchaseRecord


def test_detect_delimiter_from_header() -> None:
    assert detect_delimiter("Beneficiary,Date,Value") == ","
    assert detect_delimiter("Beneficiary;Date;Value") == ";"


def test_read_semicolon_sheet_with_bom_and_blank_lines() -> None:
    content = '\ufeffBeneficiary;Date;Value\nAluguel;01/02/2025;"1.234,56"\n\n;;\nCondominio;05/02/2025;800\n'
    headers, rows = read_sheet_rows(content)
    assert headers == ["Beneficiary", "Date", "Value"]
    assert len(rows) == 2
    assert rows[0]["Value"] == "1.234,56"
    assert rows[1]["Beneficiary"] == "Condominio"


def test_read_comma_sheet_keeps_quoted_commas() -> None:
    headers, rows = read_sheet_rows('Beneficiary,Date,Value\nLuz,2025-01-01,"R$ 1.234,56"\nShort,2025-01-02\n')
    assert rows[0]["Value"] == "R$ 1.234,56"
    assert rows[1]["Value"] == ""


def test_read_empty_content() -> None:
    assert read_sheet_rows("") == ([], [])


def test_category_importer_detect_and_parse() -> None:
    _, rows = read_sheet_rows(Path("tests/fixtures/agenda/boletos.csv").read_text(encoding="utf-8"))
    imp = CategorySheetImporter("boletos")
    assert imp.detect(["Beneficiary", "Date", "Value", "Description"])
    assert not imp.detect(["Item", "Date", "Value"])
    records = imp.parse_rows(rows=rows)
    assert [r.row_number for r in records] == [2, 3, 4, 5]
    assert records[0].beneficiary == "Energia"
    assert records[0].description == "Conta de luz"


def test_category_specific_records() -> None:
    _, rows = read_sheet_rows(Path("tests/fixtures/agenda/compras.csv").read_text(encoding="utf-8"))
    (purchase,) = CategorySheetImporter("compras").parse_rows(rows=rows)
    assert isinstance(purchase, PurchaseRecord)
    assert purchase.shop == "Loja X"

    _, rows = read_sheet_rows(Path("tests/fixtures/agenda/notas.csv").read_text(encoding="utf-8"))
    invoices = CategorySheetImporter("notas").parse_rows(rows=rows)
    assert all(isinstance(r, InvoiceRecord) for r in invoices)
    assert invoices[2].provider == "BF"


def test_accounts_importer() -> None:
    headers, rows = read_sheet_rows(Path("tests/fixtures/agenda/accounts.csv").read_text(encoding="utf-8"))
    imp = AccountsSheetImporter()
    assert imp.detect(headers)
    accounts = imp.parse_rows(rows=rows)
    assert [(a.owner, a.bank) for a in accounts][0] == ("Ana", "Banco do Brasil")
    assert sum(a.balance for a in accounts) == Decimal("3500.50")


def test_default_importers_registry() -> None:
    names = [i.sheet_name for i in default_importers()]
    assert names[0] == "boletos"
    assert "notas" in names and "accounts" in names
    assert isinstance(importer_for("Compras"), CategorySheetImporter)
    assert importer_for("fontes") is None
