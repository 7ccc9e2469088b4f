"""
stock_platform/types.py
=======================
Python dataclasses for the stock-analysis records, the derived valuation
view, bulk-import tallies and pagination.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

# ─── Enumerations ─────────────────────────────────────────────────────────────

AnalysisKind = Literal["earning", "revenue"]

EpsRevisionGrade = Literal[
    "A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "D-", "E",
]

EPS_REVISION_GRADES: Tuple[str, ...] = (
    "A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "D-", "E",
)


# ─── Reference Data ───────────────────────────────────────────────────────────

@dataclass
class Sector:
    id: int
    name: str
    description: str = ""


@dataclass
class Stock:
    id: int
    ticker: str
    company_name: str
    sector: Optional[Sector] = None


@dataclass
class SectorRatio:
    """Sector-wide reference ratios for one reporting period."""
    sector_id: int
    period: int
    roa: Optional[float] = None
    peg_ratio: Optional[float] = None
    psg_ratio: Optional[float] = None
    operating_margin: Optional[float] = None
    id: Optional[int] = None


@dataclass
class GrowthDatum:
    """One (calendar year, growth) pair. ``period`` is a reporting cycle, not a year."""
    year: int
    value: float
    period: Optional[int] = None
    id: Optional[int] = None


# ─── Analysis Records ─────────────────────────────────────────────────────────

@dataclass
class EarningAnalysis:
    id: int
    period: int
    price: float
    pe: float
    roa: float
    eps_revision_grade: str
    stock: Stock
    eps_growth_data: List[GrowthDatum] = field(default_factory=list)
    eps_growth_adjusted_rate: Optional[float] = None
    sector_ratio: Optional[SectorRatio] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class RevenueAnalysis:
    id: int
    period: int
    price: float
    ps: float
    operating_margin: float
    stock: Stock
    sales_growth_data: List[GrowthDatum] = field(default_factory=list)
    sales_growth_adjusted_rate: Optional[float] = None
    sector_ratio: Optional[SectorRatio] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


Analysis = Union[EarningAnalysis, RevenueAnalysis]


# ─── Derived Valuation ────────────────────────────────────────────────────────

@dataclass
class ValuationResult:
    """
    Derived fields appended to an analysis record.

    growth_0..growth_2 are positional: index i holds the record's growth for
    the i-th year selected across the whole batch (``years``).
    """
    years: List[int] = field(default_factory=list)
    growth_0: Optional[float] = None
    growth_1: Optional[float] = None
    growth_2: Optional[float] = None
    growth_avg: Optional[float] = None
    ratio: Optional[float] = None
    growth_valuation: Optional[float] = None
    growth_valuation_price: Optional[float] = None
    growth_profitability_valuation: Optional[float] = None
    growth_profitability_valuation_price: Optional[float] = None
    upside_potential: Optional[float] = None
    rule_of_40: Optional[float] = None

    @property
    def growth_values(self) -> List[Optional[float]]:
        return [self.growth_0, self.growth_1, self.growth_2]


@dataclass
class ProcessedAnalysis:
    analysis: Analysis
    valuation: ValuationResult

    def as_dict(self) -> Dict[str, Any]:
        """Original record fields merged with the derived valuation fields."""
        row = asdict(self.analysis)
        row.update(asdict(self.valuation))
        return row


# ─── Options ──────────────────────────────────────────────────────────────────

@dataclass
class ValuationOptions:
    default_sector_multiple: float = 1.0
    price_floor_ratio: float = 0.9
    profitability_floor: float = 0.7
    profitability_cap: float = 1.3
    growth_window: int = 3
    upside_neutral_band: float = 0.05
    upside_intensity_cap: float = 0.4
    page_size: int = 50


# ─── API / Bulk Import ────────────────────────────────────────────────────────

@dataclass
class PaginationInfo:
    current: int = 1
    total: int = 1
    limit: int = 50
    total_items: int = 0
    has_next: bool = False
    has_prev: bool = False


@dataclass
class AnalysisPage:
    kind: AnalysisKind
    data: List[Analysis] = field(default_factory=list)
    pagination: PaginationInfo = field(default_factory=PaginationInfo)


@dataclass
class BulkError:
    data: Dict[str, Any]
    error: str


@dataclass
class BulkResult:
    success: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[BulkError] = field(default_factory=list)
    total: int = 0
    success_count: int = 0
    error_count: int = 0

    @property
    def status_code(self) -> int:
        """201 on full success, 207 (multi-status) when any row failed."""
        return 207 if self.error_count > 0 else 201
