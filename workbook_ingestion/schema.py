"""
Field schema registry and data models.

Defines the catalogue of every recognised financial input field (the
"truth" that workbook rows are mapped into) and the typed data structures
carried through the ingestion pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union


# ---------------------------------------------------------------------------
# Field Schema Registry
# ---------------------------------------------------------------------------

class ValueType(str, Enum):
    MONETARY = "monetary"
    PERCENTAGE = "percentage"
    DAY_COUNT = "day_count"


class FieldGroup(str, Enum):
    """Driver vs. override grouping of a field."""

    DRIVER_REQUIRED = "driver_required"
    DRIVER_OPTIONAL = "driver_optional"
    OVERRIDE_PL = "override_pl"
    OVERRIDE_BS = "override_bs"
    OVERRIDE_CF = "override_cf"


DRIVER_GROUPS: tuple[FieldGroup, ...] = (
    FieldGroup.DRIVER_REQUIRED,
    FieldGroup.DRIVER_OPTIONAL,
)
OVERRIDE_GROUPS: tuple[FieldGroup, ...] = (
    FieldGroup.OVERRIDE_PL,
    FieldGroup.OVERRIDE_BS,
    FieldGroup.OVERRIDE_CF,
)


@dataclass(frozen=True)
class FieldDefinition:
    """One registry entry.  ``key`` is the stable internal identifier."""

    key: str
    label: str
    value_type: ValueType
    group: FieldGroup
    first_period_only: bool = False
    required: bool = False
    is_override: bool = False
    note: Optional[str] = None


def _driver(
    key: str,
    label: str,
    value_type: ValueType = ValueType.MONETARY,
    *,
    required: bool = False,
    first_period_only: bool = False,
    note: Optional[str] = None,
) -> FieldDefinition:
    return FieldDefinition(
        key=key,
        label=label,
        value_type=value_type,
        group=FieldGroup.DRIVER_REQUIRED if required else FieldGroup.DRIVER_OPTIONAL,
        first_period_only=first_period_only,
        required=required,
        note=note,
    )


def _override(
    key: str, label: str, group: FieldGroup, note: Optional[str] = None
) -> FieldDefinition:
    return FieldDefinition(
        key=key,
        label=label,
        value_type=ValueType.MONETARY,
        group=group,
        is_override=True,
        note=note,
    )


_DEFINITIONS: List[FieldDefinition] = [
    # --- Core drivers (required) ---
    _driver("revenue", "Receita Líquida (Revenue)", required=True),
    _driver(
        "grossMarginPercentage", "Margem Bruta %", ValueType.PERCENTAGE,
        required=True, note="Ex: 40 para 40%. Usado para calcular CPV/CSV.",
    ),
    _driver("operatingExpenses", "Despesas Operacionais Totais (SG&A)", required=True),
    _driver(
        "openingCash", "Caixa (Saldo Inicial)",
        required=True, first_period_only=True,
        note="Apenas para o 1º período da série.",
    ),
    _driver(
        "accountsReceivableValueAvg", "Contas a Receber (Valor Médio do Período)",
        required=True,
    ),
    _driver("inventoryValueAvg", "Estoques (Valor Médio do Período)", required=True),
    _driver(
        "accountsPayableValueAvg", "Contas a Pagar (Valor Médio do Período)",
        required=True,
    ),
    _driver("netFixedAssets", "Ativo Imobilizado Líquido (Saldo Final)", required=True),
    _driver("totalBankLoans", "Empréstimos Bancários Totais (Saldo Final)", required=True),
    _driver(
        "initialEquity", "Patrimônio Líquido (Saldo Inicial)",
        required=True, first_period_only=True,
        note="Apenas para o 1º período da série.",
    ),

    # --- Optional drivers ---
    _driver("depreciationAndAmortisation", "Depreciação e Amortização (D&A)"),
    _driver(
        "netInterestExpenseIncome", "Despesas/Receitas Financeiras (Líquido)",
        note="Negativo para despesa líquida",
    ),
    _driver(
        "incomeTaxRatePercentage", "Alíquota de Imposto de Renda Efetiva %",
        ValueType.PERCENTAGE, note="Ex: 25 para 25%.",
    ),
    _driver("dividendsPaid", "Dividendos Pagos / Distribuições"),
    _driver(
        "extraordinaryItems", "Itens Extraordinários (Líquido)",
        note="Positivo para ganho, negativo para perda extraordinária.",
    ),
    _driver("capitalExpenditures", "Investimentos em Ativo Imobilizado (CAPEX)"),
    _driver("accountsReceivableDays", "Prazo Médio de Recebimento (Dias)", ValueType.DAY_COUNT),
    _driver("inventoryDays", "Prazo Médio de Estoques (Dias)", ValueType.DAY_COUNT),
    _driver("accountsPayableDays", "Prazo Médio de Pagamento (Dias)", ValueType.DAY_COUNT),

    # --- P&L overrides ---
    _override("override_cogs", "CPV/CSV (Valor Real)", FieldGroup.OVERRIDE_PL,
              note="Substitui cálculo via Margem Bruta %"),
    _override("override_grossProfit", "Lucro Bruto (Valor Real)", FieldGroup.OVERRIDE_PL),
    _override("override_ebitda", "EBITDA (Valor Real)", FieldGroup.OVERRIDE_PL),
    _override("override_ebit", "EBIT/Lucro Operacional (Valor Real)", FieldGroup.OVERRIDE_PL),
    _override("override_pbt", "LAIR/Lucro Antes IR (Valor Real)", FieldGroup.OVERRIDE_PL),
    _override("override_incomeTax", "Imposto de Renda (Valor Real)", FieldGroup.OVERRIDE_PL),
    _override("override_netProfit", "Lucro Líquido (Valor Real)", FieldGroup.OVERRIDE_PL),

    # --- Balance sheet overrides ---
    _override("override_AR_ending", "Contas a Receber (Saldo Final Real)", FieldGroup.OVERRIDE_BS),
    _override("override_Inventory_ending", "Estoques (Saldo Final Real)", FieldGroup.OVERRIDE_BS),
    _override("override_AP_ending", "Contas a Pagar (Saldo Final Real)", FieldGroup.OVERRIDE_BS),
    _override("override_totalCurrentAssets", "Ativo Circulante Total (Real)", FieldGroup.OVERRIDE_BS),
    _override("override_totalAssets", "Ativo Total (Real)", FieldGroup.OVERRIDE_BS),
    _override("override_totalCurrentLiabilities", "Passivo Circulante Total (Real)",
              FieldGroup.OVERRIDE_BS),
    _override("override_totalLiabilities", "Passivo Total (Real)", FieldGroup.OVERRIDE_BS),
    _override("override_equity_ending", "Patrimônio Líquido (Saldo Final Real)",
              FieldGroup.OVERRIDE_BS),

    # --- Cash flow overrides ---
    _override("override_closingCash", "Caixa Final (Valor Real)", FieldGroup.OVERRIDE_CF),
    _override("override_operatingCashFlow", "Fluxo de Caixa Operacional (Real)",
              FieldGroup.OVERRIDE_CF),
    _override("override_workingCapitalChange", "Variação do Capital de Giro (Real)",
              FieldGroup.OVERRIDE_CF, note="Positivo = Uso de Caixa"),
]

# Read-only, process-wide.  Insertion order is the canonical field order.
FIELD_REGISTRY: Mapping[str, FieldDefinition] = MappingProxyType(
    {d.key: d for d in _DEFINITIONS}
)


def get_field_keys(
    groups: Union[FieldGroup, Iterable[FieldGroup], None] = None,
) -> List[str]:
    """Return registry keys, optionally restricted to one or more groups."""
    if groups is None:
        return list(FIELD_REGISTRY)
    if isinstance(groups, FieldGroup):
        groups = (groups,)
    wanted = set(groups)
    return [k for k, d in FIELD_REGISTRY.items() if d.group in wanted]


def driver_field_keys() -> List[str]:
    return get_field_keys(DRIVER_GROUPS)


def override_field_keys(section: Optional[FieldGroup] = None) -> List[str]:
    """Override keys, for one statement section or all three."""
    if section is not None:
        if section not in OVERRIDE_GROUPS:
            raise ValueError(f"{section!r} is not an override group")
        return get_field_keys(section)
    return get_field_keys(OVERRIDE_GROUPS)


def is_override_field(key: str) -> bool:
    definition = FIELD_REGISTRY.get(key)
    return definition is not None and (
        definition.is_override or definition.group in OVERRIDE_GROUPS
    )


# ---------------------------------------------------------------------------
# Cell-level value model
# ---------------------------------------------------------------------------

class NotApplicable(Enum):
    """Explicit marker: the field does not apply to this period."""

    NOT_APPLICABLE = "N/A"

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"


NOT_APPLICABLE = NotApplicable.NOT_APPLICABLE

# A dataset value is a number, NOT_APPLICABLE, or None ("not provided").
FieldValue = Union[float, NotApplicable, None]


def is_number(value: FieldValue) -> bool:
    return isinstance(value, float)


# ---------------------------------------------------------------------------
# Workbook structure
# ---------------------------------------------------------------------------

class TemplateVariant(str, Enum):
    SMART_ADAPTIVE = "smart_adaptive"
    BASIC_LEGACY = "basic_drivers"
    GENERIC = "generic"


class SheetRole(str, Enum):
    DRIVERS = "drivers"
    OVERRIDE_PL = "override_pl"
    OVERRIDE_BS = "override_bs"
    OVERRIDE_CF = "override_cf"
    INSTRUCTIONS = "instructions"


# Override roles in the fixed order they are merged after the drivers pass
OVERRIDE_ROLE_ORDER: tuple[SheetRole, ...] = (
    SheetRole.OVERRIDE_PL,
    SheetRole.OVERRIDE_BS,
    SheetRole.OVERRIDE_CF,
)

ROLE_GROUPS: Mapping[SheetRole, FieldGroup] = MappingProxyType({
    SheetRole.OVERRIDE_PL: FieldGroup.OVERRIDE_PL,
    SheetRole.OVERRIDE_BS: FieldGroup.OVERRIDE_BS,
    SheetRole.OVERRIDE_CF: FieldGroup.OVERRIDE_CF,
})


@dataclass(frozen=True)
class WorkbookStructure:
    """Classification of one workbook.  Immutable once built."""

    variant: TemplateVariant
    sheet_roles: Mapping[SheetRole, str] = field(default_factory=dict)
    declared_period_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "sheet_roles", MappingProxyType(dict(self.sheet_roles))
        )

    def sheet_for(self, role: SheetRole) -> Optional[str]:
        return self.sheet_roles.get(role)

    def with_period_count(self, count: int) -> "WorkbookStructure":
        return replace(self, sheet_roles=dict(self.sheet_roles), declared_period_count=count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "variant": self.variant.value,
            "sheet_roles": {r.value: name for r, name in self.sheet_roles.items()},
            "declared_period_count": self.declared_period_count,
        }


# ---------------------------------------------------------------------------
# Period dataset
# ---------------------------------------------------------------------------

class PeriodDataset:
    """Ordered per-period records holding a value for every registry key.

    Index ``i`` is period ``i + 1``.  First-period-only fields start as
    ``NOT_APPLICABLE`` in every later period and cannot be overwritten
    there.  After :meth:`freeze` the records are read-only mappings.
    """

    def __init__(
        self,
        period_count: int,
        registry: Mapping[str, FieldDefinition] = FIELD_REGISTRY,
    ) -> None:
        self._registry = registry
        self._frozen = False
        self._records: List[Dict[str, FieldValue]] = []
        for idx in range(period_count):
            record: Dict[str, FieldValue] = {}
            for key, definition in registry.items():
                record[key] = (
                    NOT_APPLICABLE if definition.first_period_only and idx > 0 else None
                )
            self._records.append(record)

    # ------------------------------------------------------------------ #
    # Mutation (only during extraction / merge)
    # ------------------------------------------------------------------ #

    def set_value(self, index: int, key: str, value: FieldValue) -> bool:
        """Store ``value`` unconditionally.  Returns False when refused."""
        if self._frozen:
            raise RuntimeError("PeriodDataset is frozen; ingestion has completed")
        definition = self._registry.get(key)
        if definition is None:
            raise KeyError(f"Unknown field key: {key!r}")
        if definition.first_period_only and index > 0:
            return False
        self._records[index][key] = value
        return True

    def freeze(self) -> "PeriodDataset":
        if not self._frozen:
            self._records = [MappingProxyType(r) for r in self._records]  # type: ignore[misc]
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------ #
    # Read access
    # ------------------------------------------------------------------ #

    def get(self, index: int, key: str) -> FieldValue:
        return self._records[index][key]

    @property
    def registry(self) -> Mapping[str, FieldDefinition]:
        return self._registry

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> Mapping[str, FieldValue]:
        return self._records[index]

    def __iter__(self) -> Iterator[Mapping[str, FieldValue]]:
        return iter(self._records)

    def to_list(self) -> List[Dict[str, Any]]:
        """JSON-safe copy: ``NOT_APPLICABLE`` becomes ``"N/A"``."""
        return [
            {k: (v.value if isinstance(v, NotApplicable) else v) for k, v in r.items()}
            for r in self._records
        ]


# ---------------------------------------------------------------------------
# Quality report and pipeline output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QualityReport:
    """Completeness figures derived from a ``PeriodDataset``."""

    required_completeness: float  # 0 – 100
    optional_completeness: float  # 0 – 100
    override_count: int
    quality_score: int  # 0 – 100
    required_filled: int = 0
    required_applicable: int = 0
    optional_filled: int = 0
    optional_applicable: int = 0

    @property
    def has_overrides(self) -> bool:
        return self.override_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "required_completeness": self.required_completeness,
            "optional_completeness": self.optional_completeness,
            "override_count": self.override_count,
            "quality_score": self.quality_score,
            "required_filled": self.required_filled,
            "required_applicable": self.required_applicable,
            "optional_filled": self.optional_filled,
            "optional_applicable": self.optional_applicable,
            "has_overrides": self.has_overrides,
        }


@dataclass
class IngestionResult:
    """Aggregate result of a full ingestion run."""

    dataset: PeriodDataset
    structure: WorkbookStructure
    actual_period_count: int
    quality: QualityReport
    period_type: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def variant(self) -> TemplateVariant:
        return self.structure.variant

    @property
    def declared_period_count(self) -> int:
        return self.structure.declared_period_count

    @property
    def periods(self) -> PeriodDataset:
        return self.dataset

    def to_dict(self) -> dict[str, Any]:
        return {
            "variant": self.variant.value,
            "declared_period_count": self.declared_period_count,
            "actual_period_count": self.actual_period_count,
            "period_type": self.period_type,
            "sheet_roles": self.structure.to_dict()["sheet_roles"],
            "periods": self.dataset.to_list(),
            "quality": self.quality.to_dict(),
            "recommendations": list(self.recommendations),
            "warnings": list(self.warnings),
        }
