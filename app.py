"""
app.py
======
Stock Valuation — Streamlit front-end

Sources:
  1. Upload  — analysis file + growth file (CSV / XLSX)
  2. API     — one page from the analysis REST API

Views:
  - Valuation grid (growth, PEG/PSG, fair prices, upside potential)
  - Upside chart
  - Rejected upload rows
  - Excel download
"""

import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd
import plotly.graph_objects as go
import requests
import streamlit as st

from stock_platform.bulk import (
    bulk_import_earning_analyses, bulk_import_growth, bulk_import_revenue_analyses,
)
from stock_platform.config import load_options
from stock_platform.datasource import (
    assemble_earning_analyses, assemble_revenue_analyses, fetch_analysis_page,
)
from stock_platform.export import (
    default_export_filename, earning_export_rows, export_analyses, revenue_export_rows,
)
from stock_platform.formatting import (
    format_currency, format_percent, format_ratio, grade_color, period_label, upside_color,
)
from stock_platform.market import fetch_quotes, quote_columns
from stock_platform.parser import parse_upload
from stock_platform.types import BulkResult, ProcessedAnalysis, SectorRatio, Stock
from stock_platform.valuation import process_earning_analyses, process_revenue_analyses

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

# ─── Page Configuration ───────────────────────────────────────────────────────

st.set_page_config(
    page_title="Stock Valuation",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .main-header {
        background: linear-gradient(135deg, #1e40af 0%, #3730a3 100%);
        border-radius: 12px;
        padding: 1.2rem 1.5rem;
        color: white;
        margin-bottom: 1.5rem;
    }
    .main-header h1 { margin: 0; font-size: 1.6rem; font-weight: 700; }
    .main-header p  { margin: 0.25rem 0 0; font-size: 0.85rem; opacity: 0.85; }
</style>
""", unsafe_allow_html=True)

OPTIONS = load_options()

_PERCENT_COLS = {
    "ROA", "Operating Margin", "EPS Growth Adj. Rate", "Sales Growth Adj. Rate",
    "EPS Growth +0", "EPS Growth +1", "EPS Growth +2", "EPS Growth Avg",
    "Sales Growth +0", "Sales Growth +1", "Sales Growth +2", "Sales Growth Avg",
    "Upside Potential", "Rule of 40", "Decline From High",
}
_CURRENCY_COLS = {"Price", "Live Price", "52W High", "Growth Valuation Price", "Growth+Profitability Valuation Price"}


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _display_frame(rows: List[Dict]) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    for col in df.columns:
        if col in _PERCENT_COLS:
            df[col] = [format_percent(v) for v in _nullable(df[col])]
        elif col in _CURRENCY_COLS:
            df[col] = [format_currency(v) for v in _nullable(df[col])]
        elif df[col].dtype.kind == "f":
            df[col] = [format_ratio(v) for v in _nullable(df[col])]
    return df


def _nullable(series: pd.Series) -> List[Optional[float]]:
    return [None if pd.isna(v) else float(v) for v in series]


def _style_grid(df: pd.DataFrame, raw_upside: List[Optional[float]]):
    def upside_css(col: pd.Series) -> List[str]:
        out = []
        for v in raw_upside:
            c = upside_color(v, OPTIONS.upside_neutral_band, OPTIONS.upside_intensity_cap)
            out.append(f"color: {c}; font-weight: bold" if c else "font-weight: bold")
        return out

    def grade_css(col: pd.Series) -> List[str]:
        return [f"background-color: {grade_color(str(g))}; color: white" for g in col]

    styler = df.style.apply(upside_css, subset=["Upside Potential"])
    if "EPS Revision Grade" in df.columns:
        styler = styler.apply(grade_css, subset=["EPS Revision Grade"])
    return styler


def _build_upside_bar(processed: List[ProcessedAnalysis]) -> go.Figure:
    pts = [
        (f"{p.analysis.stock.ticker} ({period_label(p.analysis.period)})", p.valuation.upside_potential)
        for p in processed if p.valuation.upside_potential is not None
    ]
    pts.sort(key=lambda t: t[1], reverse=True)
    colors = [
        upside_color(v, OPTIONS.upside_neutral_band, OPTIONS.upside_intensity_cap) or "#64748b"
        for _, v in pts
    ]
    fig = go.Figure(go.Bar(
        x=[t for t, _ in pts], y=[v * 100 for _, v in pts], marker_color=colors,
    ))
    fig.update_layout(
        title=dict(text="Upside Potential", font=dict(size=14, color="#1e293b")),
        yaxis_title="%",
        paper_bgcolor="white", plot_bgcolor="#f8fafc",
        margin=dict(l=40, r=20, t=40, b=30),
        height=320, showlegend=False,
        xaxis=dict(gridcolor="#e2e8f0"), yaxis=dict(gridcolor="#e2e8f0"),
    )
    return fig


def _sector_ratio_from_sidebar(kind: str) -> Optional[SectorRatio]:
    if not st.session_state["use_sector"]:
        return None
    if kind == "earning":
        return SectorRatio(
            sector_id=0, period=0,
            peg_ratio=st.session_state["sector_multiple"],
            roa=st.session_state["sector_profitability"],
        )
    return SectorRatio(
        sector_id=0, period=0,
        psg_ratio=st.session_state["sector_multiple"],
        operating_margin=st.session_state["sector_profitability"],
    )


def _process_uploads(kind: str, analysis_file, growth_file) -> Tuple[List[ProcessedAnalysis], List[BulkResult]]:
    """Parse + validate both uploads, join them and run the valuation."""
    analysis_rows = parse_upload(analysis_file.getvalue(), analysis_file.name)
    growth_rows = parse_upload(growth_file.getvalue(), growth_file.name) if growth_file else []

    tickers = sorted({str(r["ticker"]).upper() for r in analysis_rows if r.get("ticker")})
    stocks: Dict[str, Stock] = {
        t: Stock(id=i, ticker=t, company_name=t) for i, t in enumerate(tickers, start=1)
    }

    accepted, accepted_growth = [], []
    importer = bulk_import_earning_analyses if kind == "earning" else bulk_import_revenue_analyses
    results = [importer(analysis_rows, stocks.values(), save=lambda s, r: accepted.append(r))]
    if growth_rows:
        results.append(bulk_import_growth(
            growth_rows, stocks.values(),
            kind="eps" if kind == "earning" else "sales",
            save=lambda s, r: accepted_growth.append(r),
        ))

    sector = _sector_ratio_from_sidebar(kind)
    if kind == "earning":
        records = assemble_earning_analyses(accepted, accepted_growth, stocks, sector)
        return process_earning_analyses(records, OPTIONS), results
    records = assemble_revenue_analyses(accepted, accepted_growth, stocks, sector)
    return process_revenue_analyses(records, OPTIONS), results


def _process_api(kind: str, base_url: str, page: int, period: Optional[int]) -> List[ProcessedAnalysis]:
    result = fetch_analysis_page(base_url, kind, page=page, limit=OPTIONS.page_size, period=period)
    if kind == "earning":
        return process_earning_analyses(result.data, OPTIONS)
    return process_revenue_analyses(result.data, OPTIONS)


# ─── Session State ────────────────────────────────────────────────────────────

def _init_state() -> None:
    defaults = {
        "kind": "earning",
        "processed": None,
        "processed_kind": "earning",
        "bulk_results": [],
        "use_sector": False,
        "sector_multiple": OPTIONS.default_sector_multiple,
        "sector_profitability": 0.10,
        "live_quotes": False,
    }
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v


_init_state()


# ─── Sidebar ──────────────────────────────────────────────────────────────────

with st.sidebar:
    st.markdown("### ⚙️ Analysis")
    kind = st.radio(
        "Analysis type", ["earning", "revenue"],
        format_func=lambda k: "Earning (P/E)" if k == "earning" else "Revenue (P/S)",
        key="kind",
    )
    st.markdown("### 🏢 Sector Reference")
    st.checkbox("Apply sector ratio", key="use_sector")
    st.number_input(
        "Sector PEG ratio" if kind == "earning" else "Sector PSG ratio",
        min_value=0.0, step=0.1, key="sector_multiple",
    )
    st.number_input(
        "Sector ROA" if kind == "earning" else "Sector operating margin",
        min_value=-1.0, max_value=1.0, step=0.01, key="sector_profitability",
    )
    st.markdown("### 💹 Market Data")
    st.checkbox("Add live quote columns (Yahoo Finance)", key="live_quotes")


# ─── Main Header ─────────────────────────────────────────────────────────────

st.markdown("""
<div class='main-header'>
    <h1>📈 Stock Valuation</h1>
    <p>Growth and profitability based fair value for earning (P/E) and revenue (P/S) analyses</p>
</div>
""", unsafe_allow_html=True)

tab_upload, tab_api = st.tabs(["📁 Upload", "🌐 API"])

with tab_upload:
    col1, col2 = st.columns(2)
    with col1:
        analysis_file = st.file_uploader("Analysis file", type=["csv", "xlsx", "xls"], key="analysis_file")
    with col2:
        growth_file = st.file_uploader(
            "EPS growth file" if kind == "earning" else "Sales growth file",
            type=["csv", "xlsx", "xls"], key="growth_file",
        )
    if analysis_file and st.button("▶ Run Valuation", type="primary"):
        try:
            processed, results = _process_uploads(kind, analysis_file, growth_file)
            st.session_state.update({"processed": processed, "processed_kind": kind, "bulk_results": results})
        except ValueError as e:
            st.error(f"❌ {e}")

with tab_api:
    base_url = st.text_input("API base URL", placeholder="http://localhost:3000")
    c1, c2 = st.columns(2)
    page = c1.number_input("Page", min_value=1, value=1, step=1)
    period_in = c2.text_input("Period (optional)")
    if base_url and st.button("⬇ Fetch Page"):
        try:
            period = int(period_in) if period_in.strip() else None
            st.session_state.update({
                "processed": _process_api(kind, base_url, int(page), period),
                "processed_kind": kind,
                "bulk_results": [],
            })
        except (requests.RequestException, ValueError) as e:
            st.error(f"❌ {e}")


# ─── Results ──────────────────────────────────────────────────────────────────

processed: Optional[List[ProcessedAnalysis]] = st.session_state["processed"]

for res in st.session_state["bulk_results"]:
    if res.error_count:
        st.warning(f"⚠️ {res.success_count}/{res.total} rows accepted, {res.error_count} rejected")
        st.dataframe(
            pd.DataFrame([{"Ticker": e.data.get("ticker"), "Period": e.data.get("period"), "Error": e.error}
                          for e in res.errors]),
            width='stretch', hide_index=True,
        )

if processed:
    kind = st.session_state["processed_kind"]
    rows = earning_export_rows(processed) if kind == "earning" else revenue_export_rows(processed)
    if st.session_state["live_quotes"]:
        with st.spinner("Fetching quotes…"):
            quotes = fetch_quotes(sorted({p.analysis.stock.ticker for p in processed}))
        for row, p in zip(rows, processed):
            row.update(quote_columns(quotes.get(p.analysis.stock.ticker.upper())))
    years = processed[0].valuation.years
    st.caption(f"Growth years: {', '.join(str(y) for y in years) or 'none'}")

    raw_upside = [p.valuation.upside_potential for p in processed]
    st.dataframe(_style_grid(_display_frame(rows), raw_upside), width='stretch', hide_index=True)
    st.plotly_chart(_build_upside_bar(processed), width='stretch')

    prefix = "earning-analysis" if kind == "earning" else "revenue-analysis"
    st.download_button(
        f"⬇️ Download Excel ({len(processed)})",
        data=export_analyses(processed, kind),
        file_name=default_export_filename(prefix),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
elif processed is not None:
    st.info("No valid analyses to display.", icon="📁")
