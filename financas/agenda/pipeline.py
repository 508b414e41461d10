"""
Ingestion: sheet rows in, occurrences out.

Categories are walked in INGEST_ORDER and each record is expanded, adjusted
and deduplicated completely before its occurrences join the accumulator, so
recurring charges are checked only against what was ingested before them.
Downloading the sheets is the only concurrent step (fetch_sources).
"""

from __future__ import annotations

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from financas.agenda.categories import INGEST_ORDER, Category, policy_for
from financas.agenda.config import AgendaConfig
from financas.agenda.currency import ConversionSettings
from financas.agenda.dedupe import RecurringDeduper
from financas.agenda.expand import expand_record
from financas.agenda.fontes import apply_fontes
from financas.agenda.importers import importer_for
from financas.agenda.importers.accounts import AccountsSheetImporter
from financas.agenda.importers.base import read_sheet_rows
from financas.agenda.importers.records import CategorySheetImporter
from financas.agenda.models import AccountBalance, CategoryIngestSummary, IngestResult, Occurrence
from financas.core.net import HttpResponse, ProviderError, http_get

logger = logging.getLogger(__name__)

Rows = list[dict[str, str]]

ACCOUNTS_SHEET = "accounts"
FONTES_SHEET = "fontes"


def known_sheets() -> list[str]:
    return [c.value for c in INGEST_ORDER] + [Category.NOTAS.value, ACCOUNTS_SHEET, FONTES_SHEET]


def load_accounts(rows: Rows) -> list[AccountBalance]:
    return AccountsSheetImporter().parse_rows(rows=rows)


def _ingest_category(
    category: Category,
    rows: Rows,
    *,
    config: AgendaConfig,
    rates: Mapping[str, Any],
    settings: ConversionSettings,
    deduper: Optional[RecurringDeduper],
) -> tuple[list[Occurrence], CategoryIngestSummary, list[str]]:
    importer = CategorySheetImporter(category)
    records = importer.parse_rows(rows=rows)
    window = config.year_window.to_window()
    occurrences: list[Occurrence] = []
    warnings: list[str] = []
    skipped = 0
    suppressed_before = deduper.suppressed if deduper is not None else 0
    for rec in records:
        res = expand_record(rec, window=window, rates=rates, settings=settings, suppress=deduper)
        warnings.extend(res.warnings)
        if res.skipped:
            skipped += 1
        occurrences.extend(res.occurrences)
        if deduper is not None:
            deduper.add_all(res.occurrences)
    summary = CategoryIngestSummary(
        category=category.value,
        row_count=len(records),
        occurrences=len(occurrences),
        skipped_rows=skipped,
        duplicates_suppressed=(deduper.suppressed - suppressed_before) if deduper is not None else 0,
    )
    logger.info(
        "Ingested %s: %d rows -> %d occurrences (%d skipped, %d suppressed)",
        category.value,
        summary.row_count,
        summary.occurrences,
        summary.skipped_rows,
        summary.duplicates_suppressed,
    )
    return occurrences, summary, warnings


def compute_horizon(occurrences: list[Occurrence]) -> Optional[dt.date]:
    """Latest date among categories that extend the agenda (open-ended recurrences do not)."""
    dates = [o.adjusted_date for o in occurrences if policy_for(o.category).extends_horizon]
    return max(dates) if dates else None


def ingest(
    tables: Mapping[str, Rows],
    *,
    rates: Optional[Mapping[str, Any]] = None,
    settings: Optional[ConversionSettings] = None,
    config: Optional[AgendaConfig] = None,
) -> IngestResult:
    """
    `tables` maps sheet names (category values, "notas", "accounts", "fontes")
    to parsed rows. Missing sheets are treated as empty.
    """
    config = config or AgendaConfig()
    settings = settings or config.conversion_settings()
    rates = rates or {}
    tables = {str(k).strip().lower(): v for k, v in tables.items()}

    provider_rates: dict[str, Decimal] = dict(config.provider_rates)
    if tables.get(FONTES_SHEET):
        provider_rates = apply_fontes(tables[FONTES_SHEET], settings, provider_rates)

    deduper = RecurringDeduper(config.dedupe_mode)
    occurrences: list[Occurrence] = []
    summaries: list[CategoryIngestSummary] = []
    warnings: list[str] = []
    for category in INGEST_ORDER:
        rows = tables.get(category.value) or []
        occ, summary, warn = _ingest_category(
            category, rows, config=config, rates=rates, settings=settings, deduper=deduper
        )
        occurrences.extend(occ)
        summaries.append(summary)
        warnings.extend(warn)

    invoices, inv_summary, inv_warn = _ingest_category(
        Category.NOTAS,
        tables.get(Category.NOTAS.value) or [],
        config=config,
        rates=rates,
        settings=settings,
        deduper=None,
    )
    summaries.append(inv_summary)
    warnings.extend(inv_warn)

    return IngestResult(
        occurrences=occurrences,
        invoices=invoices,
        accounts=load_accounts(tables.get(ACCOUNTS_SHEET) or []),
        horizon=compute_horizon(occurrences),
        provider_rates=provider_rates,
        categories=summaries,
        warnings=warnings,
    )


def load_tables_from_dir(path: Path) -> dict[str, Rows]:
    """Reads `<sheet>.csv` files (boletos.csv, notas.csv, accounts.csv, fontes.csv, ...) from a directory."""
    tables: dict[str, Rows] = {}
    for name in known_sheets():
        p = Path(path) / f"{name}.csv"
        if not p.is_file():
            continue
        _, rows = read_sheet_rows(p.read_text(encoding="utf-8-sig"))
        tables[name] = rows
        logger.debug("Loaded %d rows from %s", len(rows), p)
    return tables


def _fetch_one(name: str, url: str, http: Callable[..., HttpResponse]) -> Rows:
    resp = http(url)
    if resp.status_code != 200:
        raise ProviderError(f"Unexpected status {resp.status_code} for sheet {name}")
    _, rows = read_sheet_rows(resp.text())
    importer = importer_for(name)
    if importer is not None and rows and not importer.detect(rows[0].keys()):
        logger.warning("Sheet %s is missing expected columns", name)
    return rows


def fetch_sources(
    urls: Mapping[str, str],
    *,
    max_workers: int = 4,
    http: Callable[..., HttpResponse] = http_get,
) -> tuple[dict[str, Rows], list[str]]:
    """
    Download published sheets concurrently. A failing sheet is reported in the
    returned warnings and left out; the others are still returned.
    """
    tables: dict[str, Rows] = {}
    warnings: list[str] = []
    if not urls:
        return tables, warnings
    with ThreadPoolExecutor(max_workers=max(1, int(max_workers))) as pool:
        futures = {pool.submit(_fetch_one, name, url, http): name for name, url in urls.items()}
        for fut in as_completed(futures):
            name = futures[fut]
            try:
                tables[name] = fut.result()
            except ProviderError as e:
                msg = f"Failed to fetch sheet {name}: {e}"
                logger.warning("%s", msg)
                warnings.append(msg)
    return tables, warnings
