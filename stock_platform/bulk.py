"""
stock_platform/bulk.py
======================
Bulk import of analysis and growth rows: validate → look up stock →
duplicate check → persist, reporting a success / error tally.

Persistence itself is delegated to the ``save`` callback.
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .types import EPS_REVISION_GRADES, BulkError, BulkResult, Stock

logger = logging.getLogger(__name__)

SaveCallback = Callable[[Stock, BaseModel], None]


# ─── Row Schemas ──────────────────────────────────────────────────────────────

def _check_period(v: Any) -> Any:
    try:
        num = float(v)
    except (TypeError, ValueError):
        raise ValueError("Period must be an integer greater than or equal to 0")
    if num < 0 or not num.is_integer():
        raise ValueError("Period must be an integer greater than or equal to 0")
    return int(num)


class _TickerRow(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    ticker: str
    period: int

    @field_validator("period", mode="before")
    @classmethod
    def period_non_negative_int(cls, v: Any) -> Any:
        return _check_period(v)


class EarningAnalysisRow(_TickerRow):
    price: float
    pe: float
    roa: float
    eps_revision_grade: str
    eps_growth_adjusted_rate: Optional[float] = None

    @field_validator("price")
    @classmethod
    def price_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Price must be positive")
        return v

    @field_validator("pe")
    @classmethod
    def pe_range(cls, v: float) -> float:
        if v < 0 or v > 1000:
            raise ValueError("P/E ratio must be between 0 and 1000")
        return v

    @field_validator("roa")
    @classmethod
    def roa_range(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("ROA must be between 0 and 1")
        return v

    @field_validator("eps_revision_grade")
    @classmethod
    def grade_known(cls, v: str) -> str:
        if v not in EPS_REVISION_GRADES:
            raise ValueError(
                "EPS Revision Grade must be one of: " + ", ".join(EPS_REVISION_GRADES)
            )
        return v


class RevenueAnalysisRow(_TickerRow):
    price: float
    ps: float
    operating_margin: float
    sales_growth_adjusted_rate: Optional[float] = None

    @field_validator("price")
    @classmethod
    def price_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Price must be positive")
        return v

    @field_validator("ps")
    @classmethod
    def ps_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("P/S ratio must be positive")
        return v

    @field_validator("operating_margin")
    @classmethod
    def margin_range(cls, v: float) -> float:
        if v < -1 or v > 1:
            raise ValueError("Operating Margin must be between -1 and 1")
        return v

    @field_validator("sales_growth_adjusted_rate")
    @classmethod
    def adjusted_rate_range(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and (v < -1 or v > 10):
            raise ValueError("Sales Growth Adjusted Rate must be between -1 and 10")
        return v


class GrowthRow(_TickerRow):
    year: int
    value: float

    @field_validator("year")
    @classmethod
    def year_range(cls, v: int) -> int:
        if v < 1900 or v > 2100:
            raise ValueError("Year must be between 1900 and 2100")
        return v


class EpsGrowthRow(GrowthRow):
    @field_validator("value")
    @classmethod
    def value_range(cls, v: float) -> float:
        if v < -10 or v > 10:
            raise ValueError("Value must be between -10 and 10")
        return v


class SalesGrowthRow(GrowthRow):
    adjusted_rate: Optional[float] = None


EARNING_REQUIRED = ("ticker", "period", "price", "pe", "roa", "eps_revision_grade")
REVENUE_REQUIRED = ("ticker", "period", "price", "ps", "operating_margin")
GROWTH_REQUIRED = ("ticker", "period", "year", "value")


# ─── Error Formatting ─────────────────────────────────────────────────────────

def format_validation_error(exc: ValidationError) -> str:
    """First validation failure as a single readable message."""
    err = exc.errors()[0]
    if err.get("type") == "value_error":
        ctx = err.get("ctx") or {}
        return str(ctx.get("error", err.get("msg", "")))
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"{field}: {err.get('msg', 'invalid value')}"


def _missing_fields(row: Dict[str, Any], required: Sequence[str]) -> List[str]:
    return [f for f in required if row.get(f) is None or row.get(f) == ""]


# ─── Import Driver ────────────────────────────────────────────────────────────

def _bulk_import(
    rows: Sequence[Dict[str, Any]],
    model: Type[_TickerRow],
    required: Sequence[str],
    stocks: Iterable[Stock],
    key: Callable[[Stock, Any], Hashable],
    describe: Callable[[Any], str],
    existing: Iterable[Hashable] = (),
    save: Optional[SaveCallback] = None,
) -> BulkResult:
    if not rows:
        raise ValueError("Rows array is required and must not be empty")

    stock_map = {s.ticker.upper(): s for s in stocks}
    seen = set(existing)
    result = BulkResult(total=len(rows))

    def reject(row: Dict[str, Any], message: str) -> None:
        logger.warning("bulk row rejected (%s): %s", row.get("ticker"), message)
        result.errors.append(BulkError(data=dict(row), error=message))

    for row in rows:
        missing = _missing_fields(row, required)
        if missing:
            reject(row, f"Missing required fields ({', '.join(required)})")
            continue

        try:
            parsed = model.model_validate(row)
        except ValidationError as exc:
            reject(row, format_validation_error(exc))
            continue

        stock = stock_map.get(parsed.ticker.upper())
        if stock is None:
            reject(row, f"Stock with ticker '{parsed.ticker}' not found")
            continue

        k = key(stock, parsed)
        if k in seen:
            reject(row, f"{describe(parsed)} already exists")
            continue

        try:
            if save is not None:
                save(stock, parsed)
        except Exception as exc:
            reject(row, f"Unexpected error: {exc}")
            continue

        seen.add(k)
        result.success.append(parsed.model_dump())
        result.success_count += 1

    result.error_count = len(result.errors)
    logger.info(
        "bulk %s import: %d rows, %d saved, %d rejected",
        model.__name__, result.total, result.success_count, result.error_count,
    )
    return result


def bulk_import_earning_analyses(
    rows: Sequence[Dict[str, Any]],
    stocks: Iterable[Stock],
    existing: Iterable[Tuple[int, int]] = (),
    save: Optional[SaveCallback] = None,
) -> BulkResult:
    """``existing`` holds (stock_id, period) keys already persisted."""
    return _bulk_import(
        rows, EarningAnalysisRow, EARNING_REQUIRED, stocks,
        key=lambda s, r: (s.id, r.period),
        describe=lambda r: f"Analysis for {r.ticker} in period {r.period}",
        existing=existing, save=save,
    )


def bulk_import_revenue_analyses(
    rows: Sequence[Dict[str, Any]],
    stocks: Iterable[Stock],
    existing: Iterable[Tuple[int, int]] = (),
    save: Optional[SaveCallback] = None,
) -> BulkResult:
    return _bulk_import(
        rows, RevenueAnalysisRow, REVENUE_REQUIRED, stocks,
        key=lambda s, r: (s.id, r.period),
        describe=lambda r: f"Revenue analysis for {r.ticker} in period {r.period}",
        existing=existing, save=save,
    )


def bulk_import_growth(
    rows: Sequence[Dict[str, Any]],
    stocks: Iterable[Stock],
    kind: str = "eps",
    existing: Iterable[Tuple[int, int, int]] = (),
    save: Optional[SaveCallback] = None,
) -> BulkResult:
    """EPS (``kind="eps"``) or sales (``kind="sales"``) growth rows keyed by (stock_id, period, year)."""
    if kind == "eps":
        model, label = EpsGrowthRow, "EPS Growth"
    elif kind == "sales":
        model, label = SalesGrowthRow, "Sales Growth"
    else:
        raise ValueError(f"Unknown growth kind: {kind}")
    return _bulk_import(
        rows, model, GROWTH_REQUIRED, stocks,
        key=lambda s, r: (s.id, r.period, r.year),
        describe=lambda r: f"{label} for {r.ticker} in period {r.period}, year {r.year}",
        existing=existing, save=save,
    )
