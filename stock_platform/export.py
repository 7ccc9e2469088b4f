"""
stock_platform/export.py
========================
Excel export of processed analyses (pandas + openpyxl).
"""
from __future__ import annotations
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .formatting import growth_column_label
from .types import EarningAnalysis, ProcessedAnalysis, RevenueAnalysis

logger = logging.getLogger(__name__)

MIN_COLUMN_WIDTH = 15


def default_export_filename(prefix: str = "export", now: Optional[datetime] = None) -> str:
    """e.g. earning-analysis-2025-07-24-0930.xlsx"""
    ts = now or datetime.now()
    return f"{prefix}-{ts:%Y-%m-%d-%H%M}.xlsx"


def _stock_columns(p: ProcessedAnalysis) -> Dict[str, Any]:
    stock = p.analysis.stock
    return {
        "Ticker": stock.ticker,
        "Company Name": stock.company_name,
        "Period": p.analysis.period,
        "Sector": stock.sector.name if stock.sector else None,
    }


def _valuation_columns(p: ProcessedAnalysis, growth_prefix: str, ratio_label: str, multiple: str) -> Dict[str, Any]:
    v = p.valuation
    row: Dict[str, Any] = {}
    for i, value in enumerate(v.growth_values):
        row[growth_column_label(i, growth_prefix)] = value
    row[f"{growth_prefix} Avg"] = v.growth_avg
    row[ratio_label] = v.ratio
    row[f"Growth Valuation ({multiple})"] = v.growth_valuation
    row["Growth Valuation Price"] = v.growth_valuation_price
    row[f"Growth+Profitability Valuation ({multiple})"] = v.growth_profitability_valuation
    row["Growth+Profitability Valuation Price"] = v.growth_profitability_valuation_price
    row["Upside Potential"] = v.upside_potential
    return row


def earning_export_rows(processed: Sequence[ProcessedAnalysis]) -> List[Dict[str, Any]]:
    rows = []
    for p in processed:
        a: EarningAnalysis = p.analysis  # type: ignore[assignment]
        row = _stock_columns(p)
        row.update({
            "Price": a.price,
            "P/E": a.pe,
            "ROA": a.roa,
            "EPS Revision Grade": a.eps_revision_grade,
            "EPS Growth Adj. Rate": a.eps_growth_adjusted_rate,
        })
        row.update(_valuation_columns(p, "EPS Growth", "PEG Ratio", "PER"))
        rows.append(row)
    return rows


def revenue_export_rows(processed: Sequence[ProcessedAnalysis]) -> List[Dict[str, Any]]:
    rows = []
    for p in processed:
        a: RevenueAnalysis = p.analysis  # type: ignore[assignment]
        row = _stock_columns(p)
        row.update({
            "Price": a.price,
            "P/S (FWD)": a.ps,
            "Operating Margin": a.operating_margin,
            "Sales Growth Adj. Rate": a.sales_growth_adjusted_rate,
        })
        row.update(_valuation_columns(p, "Sales Growth", "PSG Ratio", "PSR"))
        row["Rule of 40"] = p.valuation.rule_of_40
        rows.append(row)
    return rows


def build_workbook(rows: Sequence[Dict[str, Any]], sheet_name: str = "Data") -> bytes:
    """Write rows to a single-sheet xlsx and return its bytes."""
    if not rows:
        raise ValueError("No data to export")

    df = pd.DataFrame(list(rows))
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        ws = writer.sheets[sheet_name]
        for idx, header in enumerate(df.columns, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = max(len(str(header)), MIN_COLUMN_WIDTH)
            ws.cell(row=1, column=idx).font = Font(bold=True)
    logger.info("exported %d rows to sheet %s", len(df), sheet_name)
    return buf.getvalue()


def export_analyses(processed: Sequence[ProcessedAnalysis], kind: str) -> bytes:
    if kind == "earning":
        return build_workbook(earning_export_rows(processed), "Earning Analysis")
    if kind == "revenue":
        return build_workbook(revenue_export_rows(processed), "Revenue Analysis")
    raise ValueError(f"Unknown analysis kind: {kind}")
