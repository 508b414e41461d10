from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from financas.agenda.categories import Category, policy_for

DISPLAY_NAME_MAX = 20


def column_value(row: Mapping[str, Any], *keys: str) -> str:
    """Case-insensitive column lookup; spreadsheets are not consistent about header case."""
    lowered = {str(k).strip().lower(): v for k, v in row.items()}
    for k in keys:
        v = lowered.get(k.lower())
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


@dataclass(frozen=True)
class SourceRecord:
    category: Category
    row_number: int
    beneficiary: str
    date_raw: str
    value_raw: str
    installments_raw: str = ""
    interval_raw: str = ""
    end_raw: str = ""
    description: str = ""
    raw: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def name(self) -> str:
        return self.beneficiary


@dataclass(frozen=True)
class PurchaseRecord(SourceRecord):
    item: str = ""
    shop: str = ""

    @property
    def name(self) -> str:
        return self.item or self.beneficiary


@dataclass(frozen=True)
class InvoiceRecord(SourceRecord):
    client: str = ""
    provider: str = ""

    @property
    def name(self) -> str:
        return self.client


def record_from_row(category: Category | str, row: Mapping[str, Any], row_number: int = 0) -> SourceRecord:
    cat = Category(category)
    base: dict[str, Any] = {
        "category": cat,
        "row_number": int(row_number),
        "beneficiary": column_value(row, "Beneficiary"),
        "date_raw": column_value(row, "Date"),
        "value_raw": column_value(row, "Value"),
        "installments_raw": column_value(row, "Installments"),
        "interval_raw": column_value(row, "Interval"),
        "end_raw": column_value(row, "End"),
        "description": column_value(row, "Description"),
        "raw": {str(k): "" if v is None else str(v) for k, v in row.items()},
    }
    name_field = policy_for(cat).name_field
    if name_field == "Item":
        return PurchaseRecord(**base, item=column_value(row, "Item"), shop=column_value(row, "Shop"))
    if name_field == "Client":
        return InvoiceRecord(**base, client=column_value(row, "Client"), provider=column_value(row, "Provider"))
    return SourceRecord(**base)


@dataclass(frozen=True)
class OccurrenceSlot:
    """One expanded date of a record, before adjustment and valuation."""

    date_str: str
    current_installment: Optional[int] = None
    total_installments: Optional[int] = None


@dataclass(frozen=True)
class Occurrence:
    record: SourceRecord
    date_str: str
    adjusted_date: dt.date
    current_installment: Optional[int]
    total_installments: Optional[int]
    category: Category
    value: Decimal
    currency: str
    original_value: Decimal
    id: str

    def __post_init__(self) -> None:
        cur, total = self.current_installment, self.total_installments
        if total is None:
            if cur is not None:
                raise ValueError("current_installment set without total_installments")
            return
        if cur is None or not (1 <= cur <= total):
            raise ValueError(f"Invalid installment label {cur}/{total}")

    @property
    def full_name(self) -> str:
        if isinstance(self.record, PurchaseRecord):
            return self.record.name or "Item não especificado"
        if isinstance(self.record, InvoiceRecord):
            return self.record.client
        return self.record.beneficiary or "Não especificado"

    @property
    def name(self) -> str:
        """Display name; purchase items are truncated for calendar cells."""
        n = self.full_name
        if isinstance(self.record, PurchaseRecord) and len(n) > DISPLAY_NAME_MAX:
            return n[:DISPLAY_NAME_MAX] + "..."
        return n

    @property
    def provider(self) -> str:
        return self.record.provider if isinstance(self.record, InvoiceRecord) else ""

    @property
    def counts_in_totals(self) -> bool:
        return policy_for(self.category).counts_in_totals

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "category": self.category.value,
            "name": self.name,
            "full_name": self.full_name,
            "original_date": self.date_str,
            "date": self.adjusted_date.isoformat(),
            "current_installment": self.current_installment,
            "total_installments": self.total_installments,
            "value": str(self.value),
            "currency": self.currency,
            "original_value": str(self.original_value),
            "description": self.record.description,
        }
        if isinstance(self.record, InvoiceRecord):
            out["provider"] = self.record.provider
            out["client"] = self.record.client
        return out


@dataclass(frozen=True)
class ExpansionResult:
    occurrences: list[Occurrence]
    warnings: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return not self.occurrences and bool(self.warnings)


@dataclass(frozen=True)
class AccountBalance:
    owner: str
    bank: str
    balance: Decimal


class CategoryIngestSummary(BaseModel):
    category: str
    row_count: int
    occurrences: int
    skipped_rows: int = 0
    duplicates_suppressed: int = 0


class IngestResult(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    occurrences: list[Any] = Field(default_factory=list)
    invoices: list[Any] = Field(default_factory=list)
    accounts: list[Any] = Field(default_factory=list)
    horizon: Optional[dt.date] = None
    provider_rates: dict[str, Decimal] = Field(default_factory=dict)
    categories: list[CategoryIngestSummary] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "occurrences": len(self.occurrences),
            "invoices": len(self.invoices),
            "accounts": len(self.accounts),
            "horizon": self.horizon.isoformat() if self.horizon else None,
            "provider_rates": {k: str(v) for k, v in sorted(self.provider_rates.items())},
            "categories": [c.model_dump() for c in self.categories],
            "warnings": list(self.warnings),
        }
