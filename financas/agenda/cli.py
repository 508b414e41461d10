from __future__ import annotations

import csv
import datetime as dt
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from financas.agenda.config import AgendaConfig, load_agenda_config
from financas.agenda.dedupe import find_duplicates, format_duplicate_groups
from financas.agenda.holidays import holidays_for_year
from financas.agenda.invoices import providers, trailing_12_month_sum
from financas.agenda.models import IngestResult
from financas.agenda.pipeline import fetch_sources, ingest, load_tables_from_dir
from financas.agenda.reports import (
    agenda_months,
    available_balance,
    calculate_totals,
    filter_occurrences,
    remaining_to_pay,
    total_balance,
)
from financas.agenda.taxes import estimate_monthly_tax
from financas.utils.money import format_brl
from financas.utils.time import local_today
from fx_rates import FALLBACK_RATES, ExchangeRateApiProvider, RateCache, RateTable, get_rates

agenda_app = typer.Typer(help="Payment agenda: expand sheets into dated occurrences and reports.")


@agenda_app.callback()
def agenda_main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _config(config_path: Optional[Path]) -> AgendaConfig:
    cfg, path = load_agenda_config(config_path)
    if path:
        typer.echo(f"Using config: {path}", err=True)
    return cfg


def _rates(cfg: AgendaConfig, *, offline: bool, refresh: bool = False) -> RateTable:
    if offline:
        return FALLBACK_RATES
    provider = ExchangeRateApiProvider(cfg.rates.url, timeout_s=cfg.rates.timeout_s)
    cache_path = Path(cfg.rates.cache_path) if cfg.rates.cache_path else None
    return get_rates(provider, RateCache(cfg.rates.ttl_seconds, cache_path), force=refresh)


def _ingest_dir(data_dir: Optional[Path], cfg: AgendaConfig, *, offline: bool) -> IngestResult:
    d = data_dir or Path(cfg.data_dir)
    if not d.is_dir():
        typer.echo(f"Data directory not found: {d}", err=True)
        raise typer.Exit(code=2)
    tables = load_tables_from_dir(d)
    if not tables:
        typer.echo(f"No sheet CSVs found in {d}", err=True)
        raise typer.Exit(code=2)
    table = _rates(cfg, offline=offline)
    return ingest(tables, rates=table.rates, config=cfg)


def _today(today: str) -> dt.date:
    if not today.strip():
        return local_today()
    try:
        return dt.date.fromisoformat(today.strip())
    except ValueError:
        raise typer.BadParameter("--today must be YYYY-MM-DD")


@agenda_app.command("expand")
def expand_cmd(
    data_dir: Optional[Path] = typer.Option(None, "--dir", exists=True, file_okay=False, help="Directory of sheet CSVs"),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="agenda.yaml override"),
    search: str = typer.Option("", help="Case-insensitive text filter"),
    disable: list[str] = typer.Option([], help="Category to hide (repeatable)"),
    include_invoices: bool = typer.Option(False, help="Also list notas"),
    offline: bool = typer.Option(False, help="Use built-in fallback exchange rates"),
):
    load_dotenv()
    cfg = _config(config)
    res = _ingest_dir(data_dir, cfg, offline=offline)
    items = filter_occurrences(res.occurrences, query=search, disabled=disable)
    if include_invoices:
        items += filter_occurrences(res.invoices, query=search, disabled=disable)
    items.sort(key=lambda o: (o.adjusted_date, o.category.value, o.name))
    out = {
        "summary": res.summary(),
        "totals": calculate_totals(items).to_dict(),
        "months": [f"{y:04d}-{m:02d}" for y, m in agenda_months(local_today(), res.horizon)],
        "occurrences": [o.to_dict() for o in items],
    }
    typer.echo(json.dumps(out, indent=2, ensure_ascii=False))


@agenda_app.command("duplicates")
def duplicates_cmd(
    data_dir: Optional[Path] = typer.Option(None, "--dir", exists=True, file_okay=False),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    offline: bool = typer.Option(False),
):
    load_dotenv()
    cfg = _config(config)
    res = _ingest_dir(data_dir, cfg, offline=offline)
    groups = find_duplicates(res.occurrences, res.invoices)
    typer.echo(json.dumps(format_duplicate_groups(groups), indent=2, ensure_ascii=False))


@agenda_app.command("holidays")
def holidays_cmd(year: int = typer.Option(..., help="Calendar year")):
    try:
        days = holidays_for_year(year)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    typer.echo(json.dumps({d.isoformat(): name for d, name in sorted(days.items())}, indent=2, ensure_ascii=False))


@agenda_app.command("tax-estimate")
def tax_estimate_cmd(
    year: int = typer.Option(...),
    month: int = typer.Option(..., min=1, max=12),
    provider: str = typer.Option("", help="Restrict to one provider"),
    data_dir: Optional[Path] = typer.Option(None, "--dir", exists=True, file_okay=False),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
):
    load_dotenv()
    cfg = _config(config)
    res = _ingest_dir(data_dir, cfg, offline=True)
    names = [provider.strip()] if provider.strip() else providers(res.invoices)
    rows = []
    for p in names:
        rbt12 = trailing_12_month_sum(res.invoices, year, month, p)
        if rbt12 <= 0:
            continue
        tax = estimate_monthly_tax(rbt12, cfg.tax_brackets)
        rows.append({"provider": p, "rbt12": str(rbt12), "monthly_tax": str(tax), "display": format_brl(tax)})
    typer.echo(json.dumps(rows, indent=2, ensure_ascii=False))


@agenda_app.command("remaining")
def remaining_cmd(
    year: int = typer.Option(0, help="Defaults to the current year"),
    month: int = typer.Option(0, help="Defaults to the current month"),
    today: str = typer.Option("", help="YYYY-MM-DD override for 'today'"),
    data_dir: Optional[Path] = typer.Option(None, "--dir", exists=True, file_okay=False),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    offline: bool = typer.Option(False),
):
    load_dotenv()
    cfg = _config(config)
    t = _today(today)
    y, m = (year or t.year), (month or t.month)
    res = _ingest_dir(data_dir, cfg, offline=offline)
    remaining = remaining_to_pay(res.occurrences, y, m, t)
    out = {
        "month": f"{y:04d}-{m:02d}",
        "today": t.isoformat(),
        "remaining": str(remaining),
        "balance": str(total_balance(res.accounts)),
        "available": str(available_balance(res.accounts, remaining)),
        "display": format_brl(remaining),
    }
    typer.echo(json.dumps(out, indent=2, ensure_ascii=False))


@agenda_app.command("rates")
def rates_cmd(
    refresh: bool = typer.Option(False, help="Ignore a fresh cache and fetch again"),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
):
    load_dotenv()
    cfg = _config(config)
    table = _rates(cfg, offline=False, refresh=refresh)
    typer.echo(json.dumps(table.to_dict(), indent=2))


@agenda_app.command("fetch")
def fetch_cmd(
    out: Optional[Path] = typer.Option(None, help="Directory to write <sheet>.csv files (defaults to data_dir)"),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
):
    load_dotenv()
    cfg = _config(config)
    if not cfg.sources.urls:
        typer.echo("No sources configured (agenda.sources.urls).", err=True)
        raise typer.Exit(code=2)
    tables, warnings = fetch_sources(cfg.sources.urls, max_workers=cfg.sources.max_workers)
    target = out or Path(cfg.data_dir)
    target.mkdir(parents=True, exist_ok=True)
    written: dict[str, int] = {}
    for name, rows in sorted(tables.items()):
        headers: list[str] = []
        for r in rows:
            headers.extend(h for h in r.keys() if h not in headers)
        with (target / f"{name}.csv").open("w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=headers)
            w.writeheader()
            w.writerows(rows)
        written[name] = len(rows)
    typer.echo(json.dumps({"out": str(target), "sheets": written, "warnings": warnings}, indent=2))
    if warnings and not written:
        raise typer.Exit(code=1)
