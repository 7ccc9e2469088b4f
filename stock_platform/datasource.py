"""
stock_platform/datasource.py
============================
Typed view of the analysis REST API.

The API returns camelCase JSON, either a bare list of analyses or a page
object ``{"data": [...], "pagination": {...}}``. Decimal columns may arrive
as strings and are coerced to float here so the valuation core only ever
sees numbers.

Also joins validated upload rows (see bulk.py) into the same record types.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .types import (
    AnalysisKind, AnalysisPage, EarningAnalysis, GrowthDatum, PaginationInfo,
    RevenueAnalysis, Sector, SectorRatio, Stock,
)

logger = logging.getLogger(__name__)

_ENDPOINTS: Dict[str, str] = {
    "earning": "/api/earning-analysis",
    "revenue": "/api/revenue-analysis",
}


# ─── Field Helpers ────────────────────────────────────────────────────────────

def _num(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    return float(v)


def _int(v: Any) -> Optional[int]:
    if v is None or v == "":
        return None
    return int(v)


def parse_stock(payload: Dict[str, Any]) -> Stock:
    sector_payload = payload.get("sector")
    sector = None
    if sector_payload:
        sector = Sector(
            id=int(sector_payload["id"]),
            name=sector_payload.get("name", ""),
            description=sector_payload.get("description") or "",
        )
    return Stock(
        id=int(payload["id"]),
        ticker=payload["ticker"],
        company_name=payload.get("companyName", ""),
        sector=sector,
    )


def parse_sector_ratio(payload: Optional[Dict[str, Any]]) -> Optional[SectorRatio]:
    if not payload:
        return None
    return SectorRatio(
        id=_int(payload.get("id")),
        sector_id=int(payload.get("sectorId", 0)),
        period=int(payload.get("period", 0)),
        roa=_num(payload.get("roa")),
        peg_ratio=_num(payload.get("pegRatio")),
        psg_ratio=_num(payload.get("psgRatio")),
        operating_margin=_num(payload.get("operatingMargin")),
    )


def parse_growth_data(items: Optional[List[Dict[str, Any]]]) -> List[GrowthDatum]:
    return [
        GrowthDatum(
            year=int(g["year"]),
            value=float(g["value"]),
            period=_int(g.get("period")),
            id=_int(g.get("id")),
        )
        for g in items or []
    ]


# ─── Records ──────────────────────────────────────────────────────────────────

def parse_earning_analysis(payload: Dict[str, Any]) -> EarningAnalysis:
    return EarningAnalysis(
        id=int(payload["id"]),
        period=int(payload["period"]),
        price=float(payload["price"]),
        pe=float(payload["pe"]),
        roa=float(payload["roa"]),
        eps_revision_grade=payload.get("epsRevisionGrade", ""),
        stock=parse_stock(payload["stock"]),
        eps_growth_data=parse_growth_data(payload.get("epsGrowthData")),
        eps_growth_adjusted_rate=_num(payload.get("epsGrowthAdjustedRate")),
        sector_ratio=parse_sector_ratio(payload.get("sectorRatio")),
        created_at=payload.get("createdAt"),
        updated_at=payload.get("updatedAt"),
    )


def parse_revenue_analysis(payload: Dict[str, Any]) -> RevenueAnalysis:
    return RevenueAnalysis(
        id=int(payload["id"]),
        period=int(payload["period"]),
        price=float(payload["price"]),
        ps=float(payload["ps"]),
        operating_margin=float(payload["operatingMargin"]),
        stock=parse_stock(payload["stock"]),
        sales_growth_data=parse_growth_data(payload.get("salesGrowthData")),
        sales_growth_adjusted_rate=_num(payload.get("salesGrowthAdjustedRate")),
        sector_ratio=parse_sector_ratio(payload.get("sectorRatio")),
        created_at=payload.get("createdAt"),
        updated_at=payload.get("updatedAt"),
    )


def parse_pagination(payload: Optional[Dict[str, Any]], count: int) -> PaginationInfo:
    if not payload:
        return PaginationInfo(current=1, total=1, limit=count, total_items=count)
    return PaginationInfo(
        current=int(payload.get("current", 1)),
        total=int(payload.get("total", 1)),
        limit=int(payload.get("limit", count)),
        total_items=int(payload.get("totalItems", count)),
        has_next=bool(payload.get("hasNext", False)),
        has_prev=bool(payload.get("hasPrev", False)),
    )


def parse_page(payload: Any, kind: AnalysisKind) -> AnalysisPage:
    """Build an AnalysisPage from an API response body. Raises ValueError on an unknown shape."""
    if kind == "earning":
        parse_one = parse_earning_analysis
    elif kind == "revenue":
        parse_one = parse_revenue_analysis
    else:
        raise ValueError(f"Unknown analysis kind: {kind}")

    if isinstance(payload, list):
        items, pagination = payload, None
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items, pagination = payload["data"], payload.get("pagination")
    else:
        raise ValueError("Analysis response must be a list or contain a 'data' list")

    data = [parse_one(item) for item in items]
    return AnalysisPage(kind=kind, data=data, pagination=parse_pagination(pagination, len(data)))


# ─── Records From Uploaded Rows ───────────────────────────────────────────────

def _growth_by_stock_period(growth_rows: Sequence[Any]) -> Dict[Tuple[str, int], List[GrowthDatum]]:
    grouped: Dict[Tuple[str, int], List[GrowthDatum]] = defaultdict(list)
    for g in growth_rows:
        grouped[(g.ticker.upper(), g.period)].append(
            GrowthDatum(year=g.year, value=g.value, period=g.period)
        )
    return grouped


def assemble_earning_analyses(
    rows: Sequence[Any],
    growth_rows: Sequence[Any],
    stocks: Dict[str, Stock],
    sector_ratio: Optional[SectorRatio] = None,
) -> List[EarningAnalysis]:
    """
    Join validated EarningAnalysisRow / EpsGrowthRow objects into records.
    Growth rows attach to the analysis of the same ticker and period.
    """
    growth = _growth_by_stock_period(growth_rows)
    out: List[EarningAnalysis] = []
    for i, r in enumerate(rows, start=1):
        key = (r.ticker.upper(), r.period)
        out.append(EarningAnalysis(
            id=i,
            period=r.period,
            price=r.price,
            pe=r.pe,
            roa=r.roa,
            eps_revision_grade=r.eps_revision_grade,
            stock=stocks[key[0]],
            eps_growth_data=list(growth.get(key, [])),
            eps_growth_adjusted_rate=r.eps_growth_adjusted_rate,
            sector_ratio=sector_ratio,
        ))
    return out


def assemble_revenue_analyses(
    rows: Sequence[Any],
    growth_rows: Sequence[Any],
    stocks: Dict[str, Stock],
    sector_ratio: Optional[SectorRatio] = None,
) -> List[RevenueAnalysis]:
    growth = _growth_by_stock_period(growth_rows)
    out: List[RevenueAnalysis] = []
    for i, r in enumerate(rows, start=1):
        key = (r.ticker.upper(), r.period)
        out.append(RevenueAnalysis(
            id=i,
            period=r.period,
            price=r.price,
            ps=r.ps,
            operating_margin=r.operating_margin,
            stock=stocks[key[0]],
            sales_growth_data=list(growth.get(key, [])),
            sales_growth_adjusted_rate=r.sales_growth_adjusted_rate,
            sector_ratio=sector_ratio,
        ))
    return out


# ─── HTTP ─────────────────────────────────────────────────────────────────────

def fetch_analysis_page(
    base_url: str,
    kind: AnalysisKind,
    page: int = 1,
    limit: int = 50,
    period: Optional[int] = None,
    session: Optional[requests.Session] = None,
    timeout: float = 10,
) -> AnalysisPage:
    if kind not in _ENDPOINTS:
        raise ValueError(f"Unknown analysis kind: {kind}")
    params: Dict[str, Any] = {"page": page, "limit": limit}
    if period is not None:
        params["period"] = period

    url = base_url.rstrip("/") + _ENDPOINTS[kind]
    logger.debug("GET %s params=%s", url, params)
    if session is None:
        with requests.Session() as http:
            response = http.get(url, params=params, timeout=timeout)
    else:
        response = session.get(url, params=params, timeout=timeout)
    response.raise_for_status()
    return parse_page(response.json(), kind)
