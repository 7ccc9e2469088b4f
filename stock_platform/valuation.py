"""
stock_platform/valuation.py
===========================
Growth-based valuation engine for earning (P/E) and revenue (P/S) analyses.

Pipeline per batch:
  1. select_growth_years  — first N calendar years across the whole batch
  2. growth_values / growth_average — per-record positional growth + mean
  3. growth_ratio         — PEG / PSG style multiple-to-growth ratio
  4. growth valuation     — growth-only fair multiple and fair price
  5. profitability        — ROA or operating-margin adjusted multiple and price
  6. upside_potential     — fair price vs. current price

Every step is total: a missing input yields ``None`` and every field that
depends on it is ``None`` as well. Input records are never mutated.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .types import (
    Analysis, AnalysisKind, EarningAnalysis, GrowthDatum, ProcessedAnalysis,
    RevenueAnalysis, SectorRatio, ValuationOptions, ValuationResult,
)

logger = logging.getLogger(__name__)

MAX_GROWTH_YEARS = 3


# ─── Numeric Helpers ──────────────────────────────────────────────────────────

def _safe_div(num: Optional[float], den: Optional[float]) -> Optional[float]:
    if num is None or den is None or den == 0:
        return None
    out = num / den
    return out if math.isfinite(out) else None


def _sector_multiple(value: Optional[float], default: float) -> float:
    # 0 and missing both fall back to the default multiple
    return float(value) if value else default


# ─── Growth Series ────────────────────────────────────────────────────────────

def select_growth_years(
    series: Iterable[Optional[Sequence[GrowthDatum]]],
    window: int = MAX_GROWTH_YEARS,
) -> List[int]:
    """
    Union of every year present in the batch, ascending, first ``window``
    (never more than MAX_GROWTH_YEARS, the number of growth columns).

    The result is positional and shared by every record of the batch:
    result[0] is column "+0", result[1] is "+1", gaps between years are kept.
    """
    years: set = set()
    for data in series:
        for growth in data or ():
            years.add(int(growth.year))
    return sorted(years)[:min(window, MAX_GROWTH_YEARS)]


def growth_values(
    data: Optional[Sequence[GrowthDatum]],
    years: Sequence[int],
) -> List[Optional[float]]:
    """Value of the record's growth datum for each selected year, ``None`` if absent."""
    by_year = {}
    for growth in data or ():
        # first datum wins on duplicate years
        by_year.setdefault(int(growth.year), growth.value)
    values: List[Optional[float]] = []
    for year in years:
        v = by_year.get(year)
        values.append(float(v) if v is not None else None)
    return values


def growth_average(
    data: Optional[Sequence[GrowthDatum]],
    years: Sequence[int],
) -> Optional[float]:
    present = [v for v in growth_values(data, years) if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def growth_ratio(multiple: Optional[float], growth_avg: Optional[float]) -> Optional[float]:
    """PEG / PSG ratio: multiple / (average growth in percent). None for a zero multiple or growth."""
    if not growth_avg or not multiple:
        return None
    return _safe_div(multiple, growth_avg * 100)


# ─── Growth-only Valuation ────────────────────────────────────────────────────

def earning_growth_valuation(
    adjusted_rate: Optional[float],
    growth_avg: Optional[float],
    peg_ratio: float,
) -> Optional[float]:
    """Fair P/E from growth alone. A zero rate or zero average counts as missing."""
    if adjusted_rate:
        return adjusted_rate * 100 * peg_ratio
    if growth_avg:
        return growth_avg * 100 * peg_ratio
    return None


def revenue_growth_valuation(
    adjusted_rate: Optional[float],
    growth_avg: Optional[float],
    ps: Optional[float],
    psg_ratio: float,
) -> Optional[float]:
    """
    Fair P/S from growth alone.

    Negative average growth shrinks the current P/S instead of scaling the
    sector PSG ratio: ps + ps * growth_avg.
    """
    if adjusted_rate:
        return adjusted_rate * 100 * psg_ratio
    if growth_avg is None:
        return None
    if growth_avg < 0:
        if ps is None:
            return None
        return ps + ps * growth_avg
    return growth_avg * 100 * psg_ratio


def growth_valuation_price(
    price: Optional[float],
    valuation: Optional[float],
    multiple: Optional[float],
    floor_ratio: Optional[float] = None,
) -> Optional[float]:
    """price * valuation / multiple; with ``floor_ratio`` a result <= 0 becomes price * floor_ratio."""
    if valuation is None or price is None:
        return None
    fair = _safe_div(price * valuation, multiple)
    if fair is None:
        return None
    if floor_ratio is not None and fair <= 0:
        return price * floor_ratio
    return fair


# ─── Profitability Adjustment ─────────────────────────────────────────────────

def profitability_multiplier(
    roa: float,
    sector_roa: float,
    floor: float = 0.7,
    cap: float = 1.3,
) -> float:
    """Log-scaled ROA premium/discount vs. the sector, clamped to [floor, cap]."""
    if roa > sector_roa:
        y = 1 + math.log(1 + (roa - sector_roa))
    else:
        y = 1 - math.log(1 + (sector_roa - roa))
    return min(cap, max(floor, y))


def earning_profitability_valuation(
    growth_valuation: Optional[float],
    roa: Optional[float],
    sector_roa: Optional[float],
    floor: float = 0.7,
    cap: float = 1.3,
) -> Optional[float]:
    if growth_valuation is None or roa is None or sector_roa is None:
        return None
    return growth_valuation * profitability_multiplier(roa, sector_roa, floor, cap)


def valuation_discount_rate(operating_margin: float, sector_operating_margin: float) -> float:
    if operating_margin < sector_operating_margin:
        if operating_margin < 0:
            return (operating_margin + sector_operating_margin) / 2
        return (operating_margin - sector_operating_margin) / 2
    return (operating_margin - sector_operating_margin) / 2


def revenue_profitability_valuation(
    growth_valuation: Optional[float],
    operating_margin: Optional[float],
    sector_operating_margin: Optional[float],
) -> Optional[float]:
    if growth_valuation is None or operating_margin is None or sector_operating_margin is None:
        return None
    discount = valuation_discount_rate(operating_margin, sector_operating_margin)
    return growth_valuation + growth_valuation * discount


def growth_profitability_valuation_price(
    price: Optional[float],
    valuation: Optional[float],
    multiple: Optional[float],
    floor_ratio: Optional[float] = None,
) -> Optional[float]:
    """price * valuation / multiple; with ``floor_ratio`` a negative result becomes price * floor_ratio."""
    if valuation is None or price is None:
        return None
    fair = _safe_div(price * valuation, multiple)
    if fair is None:
        return None
    if floor_ratio is not None and fair < 0:
        return price * floor_ratio
    return fair


# ─── Upside ───────────────────────────────────────────────────────────────────

def upside_potential(fair_price: Optional[float], price: Optional[float]) -> Optional[float]:
    if fair_price is None or price is None or price <= 0:
        return None
    return fair_price / price - 1


def rule_of_40(current_growth: Optional[float], operating_margin: Optional[float]) -> Optional[float]:
    """Current-year sales growth + operating margin."""
    if current_growth is None or operating_margin is None:
        return None
    return current_growth + operating_margin


# ─── Strategies ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ValuationStrategy:
    """
    Everything that differs between the earning and revenue pipelines.

    ``price_floor`` switches on the price * floor_ratio guard of both fair
    prices (earning only). ``rule_of_40`` receives the record and its "+0"
    growth value.
    """
    kind: AnalysisKind
    multiple: Callable[[Analysis], Optional[float]]
    growth_data: Callable[[Analysis], Optional[Sequence[GrowthDatum]]]
    adjusted_rate: Callable[[Analysis], Optional[float]]
    sector_multiple: Callable[[Optional[SectorRatio]], Optional[float]]
    growth_valuation: Callable[[Analysis, Optional[float], float], Optional[float]]
    profitability_valuation: Callable[
        [Analysis, Optional[float], ValuationOptions], Optional[float]
    ]
    price_floor: bool
    rule_of_40: Optional[Callable[[Analysis, Optional[float]], Optional[float]]] = None


def _earning_growth_valuation(a: EarningAnalysis, avg: Optional[float], peg: float) -> Optional[float]:
    return earning_growth_valuation(a.eps_growth_adjusted_rate, avg, peg)


def _earning_profitability(a: EarningAnalysis, gv: Optional[float], opts: ValuationOptions) -> Optional[float]:
    sector_roa = a.sector_ratio.roa if a.sector_ratio is not None else None
    return earning_profitability_valuation(
        gv, a.roa, sector_roa, opts.profitability_floor, opts.profitability_cap,
    )


def _revenue_growth_valuation(a: RevenueAnalysis, avg: Optional[float], psg: float) -> Optional[float]:
    return revenue_growth_valuation(a.sales_growth_adjusted_rate, avg, a.ps, psg)


def _revenue_profitability(a: RevenueAnalysis, gv: Optional[float], opts: ValuationOptions) -> Optional[float]:
    sector_margin = a.sector_ratio.operating_margin if a.sector_ratio is not None else None
    return revenue_profitability_valuation(gv, a.operating_margin, sector_margin)


EARNING_STRATEGY = ValuationStrategy(
    kind="earning",
    multiple=lambda a: a.pe,
    growth_data=lambda a: a.eps_growth_data,
    adjusted_rate=lambda a: a.eps_growth_adjusted_rate,
    sector_multiple=lambda r: r.peg_ratio if r is not None else None,
    growth_valuation=_earning_growth_valuation,
    profitability_valuation=_earning_profitability,
    price_floor=True,
)

REVENUE_STRATEGY = ValuationStrategy(
    kind="revenue",
    multiple=lambda a: a.ps,
    growth_data=lambda a: a.sales_growth_data,
    adjusted_rate=lambda a: a.sales_growth_adjusted_rate,
    sector_multiple=lambda r: r.psg_ratio if r is not None else None,
    growth_valuation=_revenue_growth_valuation,
    profitability_valuation=_revenue_profitability,
    price_floor=False,
    rule_of_40=lambda a, current: rule_of_40(current, a.operating_margin),
)

STRATEGIES = {"earning": EARNING_STRATEGY, "revenue": REVENUE_STRATEGY}


# ─── Orchestration ────────────────────────────────────────────────────────────

def value_analysis(
    analysis: Analysis,
    years: Sequence[int],
    strategy: ValuationStrategy,
    options: Optional[ValuationOptions] = None,
) -> ValuationResult:
    """Run one record through the pipeline against the batch's selected years."""
    opts = options or ValuationOptions()
    data = strategy.growth_data(analysis)
    multiple = strategy.multiple(analysis)
    floor_ratio = opts.price_floor_ratio if strategy.price_floor else None

    positional = growth_values(data, years)
    positional += [None] * (MAX_GROWTH_YEARS - len(positional))
    avg = growth_average(data, years)

    sector_multiple = _sector_multiple(
        strategy.sector_multiple(analysis.sector_ratio), opts.default_sector_multiple,
    )
    gv = strategy.growth_valuation(analysis, avg, sector_multiple)
    gv_price = growth_valuation_price(analysis.price, gv, multiple, floor_ratio)
    gpv = strategy.profitability_valuation(analysis, gv, opts)
    gpv_price = growth_profitability_valuation_price(analysis.price, gpv, multiple, floor_ratio)

    return ValuationResult(
        years=list(years),
        growth_0=positional[0],
        growth_1=positional[1],
        growth_2=positional[2],
        growth_avg=avg,
        ratio=growth_ratio(multiple, avg),
        growth_valuation=gv,
        growth_valuation_price=gv_price,
        growth_profitability_valuation=gpv,
        growth_profitability_valuation_price=gpv_price,
        upside_potential=upside_potential(gpv_price, analysis.price),
        rule_of_40=(
            strategy.rule_of_40(analysis, positional[0])
            if strategy.rule_of_40 is not None else None
        ),
    )


def process_analyses(
    analyses: Sequence[Analysis],
    strategy: ValuationStrategy,
    options: Optional[ValuationOptions] = None,
) -> List[ProcessedAnalysis]:
    opts = options or ValuationOptions()
    years = select_growth_years((strategy.growth_data(a) for a in analyses), opts.growth_window)
    logger.debug("valuing %d %s analyses, growth years=%s", len(analyses), strategy.kind, years)
    return [
        ProcessedAnalysis(analysis=a, valuation=value_analysis(a, years, strategy, opts))
        for a in analyses
    ]


def process_earning_analyses(
    analyses: Sequence[EarningAnalysis],
    options: Optional[ValuationOptions] = None,
) -> List[ProcessedAnalysis]:
    return process_analyses(analyses, EARNING_STRATEGY, options)


def process_revenue_analyses(
    analyses: Sequence[RevenueAnalysis],
    options: Optional[ValuationOptions] = None,
) -> List[ProcessedAnalysis]:
    return process_analyses(analyses, REVENUE_STRATEGY, options)
