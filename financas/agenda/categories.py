from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from financas.agenda.business_days import Adjustment


class Category(str, Enum):
    BOLETOS = "boletos"
    FINANCIAMENTOS = "financiamentos"
    EMPRESTIMOS = "emprestimos"
    PERIODICOS = "periodicos"
    IMPOSTOS = "impostos"
    ANUAIS = "anuais"
    RECORRENTES = "recorrentes"
    COMPRAS = "compras"
    INDIVIDUAL = "individual"
    NOTAS = "notas"


class Expansion(str, Enum):
    SINGLE = "single"
    INSTALLMENTS = "installments"
    ANNUAL = "annual"
    MONTHLY = "monthly"
    INTERVAL = "interval"
    INVOICE = "invoice"


@dataclass(frozen=True)
class CategoryPolicy:
    expansion: Expansion
    adjustment: Adjustment
    dedupe_against_others: bool = False
    # Recurring charges are still valued but left out of month totals.
    counts_in_totals: bool = True
    # Whether occurrences push out the last month the agenda covers.
    extends_horizon: bool = True
    name_field: str = "Beneficiary"
    label: str = ""


CATEGORY_POLICIES: dict[Category, CategoryPolicy] = {
    Category.BOLETOS: CategoryPolicy(Expansion.SINGLE, Adjustment.FORWARD, label="Boletos"),
    Category.FINANCIAMENTOS: CategoryPolicy(Expansion.INSTALLMENTS, Adjustment.FORWARD, label="Financiamentos"),
    Category.EMPRESTIMOS: CategoryPolicy(Expansion.INSTALLMENTS, Adjustment.FORWARD, label="Empréstimos"),
    Category.PERIODICOS: CategoryPolicy(
        Expansion.INTERVAL, Adjustment.NONE, extends_horizon=False, label="Periódicos"
    ),
    Category.IMPOSTOS: CategoryPolicy(Expansion.SINGLE, Adjustment.BACKWARD, label="Impostos"),
    Category.ANUAIS: CategoryPolicy(Expansion.ANNUAL, Adjustment.BACKWARD, extends_horizon=False, label="Anuais"),
    Category.RECORRENTES: CategoryPolicy(
        Expansion.MONTHLY,
        Adjustment.BACKWARD,
        dedupe_against_others=True,
        counts_in_totals=False,
        extends_horizon=False,
        label="Recorrentes",
    ),
    Category.COMPRAS: CategoryPolicy(Expansion.SINGLE, Adjustment.NONE, name_field="Item", label="Compras"),
    Category.INDIVIDUAL: CategoryPolicy(
        Expansion.INTERVAL, Adjustment.NONE, extends_horizon=False, label="Individual"
    ),
    Category.NOTAS: CategoryPolicy(
        Expansion.INVOICE, Adjustment.NONE, extends_horizon=False, name_field="Client", label="Notas"
    ),
}

# Ingestion order; deduplication of recurring charges only sees categories ingested before them.
INGEST_ORDER: tuple[Category, ...] = (
    Category.BOLETOS,
    Category.FINANCIAMENTOS,
    Category.EMPRESTIMOS,
    Category.PERIODICOS,
    Category.IMPOSTOS,
    Category.ANUAIS,
    Category.RECORRENTES,
    Category.COMPRAS,
    Category.INDIVIDUAL,
)


def policy_for(category: Category | str) -> CategoryPolicy:
    return CATEGORY_POLICIES[Category(category)]


def parse_category(name: str) -> Category:
    key = (name or "").strip().lower()
    try:
        return Category(key)
    except ValueError:
        raise ValueError(f"Unknown category: {name!r}") from None


def category_label(category: Category | str) -> str:
    try:
        return policy_for(category).label or str(category)
    except ValueError:
        return str(category)
