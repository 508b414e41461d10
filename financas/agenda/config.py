from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from financas.agenda.currency import BASE_CURRENCY, DEFAULT_TAX_RATE, ConversionSettings
from financas.agenda.dedupe import DedupeMode
from financas.agenda.expand import YearWindow
from financas.agenda.taxes import DEFAULT_BRACKETS, TaxBracket


class YearWindowConfig(BaseModel):
    start: int = 2024
    end: int = 2030

    def to_window(self) -> YearWindow:
        return YearWindow(start=self.start, end=self.end)


class TransactionTaxConfig(BaseModel):
    # IOF on foreign-currency purchases.
    rate: Decimal = DEFAULT_TAX_RATE
    enabled: bool = True
    # Empty: applies to every category.
    categories: list[str] = Field(default_factory=list)

    @field_validator("rate")
    @classmethod
    def _rate_in_unit_interval(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("transaction tax rate must be within [0, 1]")
        return v


class RatesConfig(BaseModel):
    url: str = "https://api.exchangerate-api.com/v4/latest/BRL"
    ttl_seconds: int = 3600
    cache_path: Optional[str] = "data/fx/rates.json"
    timeout_s: float = 10.0


class SourcesConfig(BaseModel):
    """Published-CSV URLs per sheet (category names, plus "notas", "accounts" and "fontes")."""

    urls: dict[str, str] = Field(default_factory=dict)
    max_workers: int = 4


class AgendaConfig(BaseModel):
    base_currency: str = BASE_CURRENCY
    year_window: YearWindowConfig = Field(default_factory=YearWindowConfig)
    transaction_tax: TransactionTaxConfig = Field(default_factory=TransactionTaxConfig)
    dedupe_mode: DedupeMode = DedupeMode.MONTH
    tax_brackets: list[TaxBracket] = Field(default_factory=lambda: list(DEFAULT_BRACKETS))
    provider_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {"VJ": Decimal("0.14"), "BF": Decimal("0.14")}
    )
    rates: RatesConfig = Field(default_factory=RatesConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    data_dir: str = "data/agenda"

    def conversion_settings(self) -> ConversionSettings:
        cats = self.transaction_tax.categories
        return ConversionSettings(
            base_currency=self.base_currency.upper(),
            tax_rate=self.transaction_tax.rate,
            tax_enabled=self.transaction_tax.enabled,
            taxed_categories=frozenset(c.strip().lower() for c in cats) if cats else None,
        )


def _candidate_paths() -> list[Path]:
    paths = [Path("agenda.yaml")]
    home = Path(os.path.expanduser("~"))
    paths.append(home / ".financas" / "agenda.yaml")
    return paths


def load_agenda_config(path: Optional[Path] = None) -> tuple[AgendaConfig, Optional[str]]:
    """
    Load agenda config from YAML (if present).

    Search paths (first match wins):
      - ./agenda.yaml
      - ~/.financas/agenda.yaml
    """
    candidates = [Path(path)] if path is not None else _candidate_paths()
    for p in candidates:
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            return AgendaConfig.model_validate(data.get("agenda") or data), str(p)
    return AgendaConfig(), None
