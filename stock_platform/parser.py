"""
stock_platform/parser.py
========================
Bulk-upload parser. Turns an uploaded spreadsheet into a list of row dicts
keyed by snake_case field names, ready for validation in ``bulk``.

Handles:
  - CSV (.csv)
  - Excel (.xlsx via openpyxl, .xls via xlrd) – first sheet only
"""
from __future__ import annotations
import io
import logging
import math
import re
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

# Header aliases that do not snake_case into the canonical field name.
_HEADER_ALIASES: Dict[str, str] = {
    "p_e": "pe",
    "pe_ratio": "pe",
    "p_s": "ps",
    "p_s_fwd": "ps",
    "ps_fwd": "ps",
    "ps_ratio": "ps",
    "symbol": "ticker",
    "eps_revision": "eps_revision_grade",
    "grade": "eps_revision_grade",
    "growth": "value",
}

_TEXT_FIELDS = {"ticker", "eps_revision_grade", "company_name"}


# ─── Header Normalisation ─────────────────────────────────────────────────────

def normalize_header(name: Any) -> str:
    """
    'EPS Revision Grade' → 'eps_revision_grade'
    'epsGrowthAdjustedRate' → 'eps_growth_adjusted_rate'
    'P/S (FWD)' → 'ps'
    """
    s = str(name).strip()
    s = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', s)
    s = re.sub(r'[^0-9a-zA-Z]+', '_', s).strip('_').lower()
    return _HEADER_ALIASES.get(s, s)


# ─── Numeric Normalisation ────────────────────────────────────────────────────

def to_numeric(val: Any) -> Optional[float]:
    """Convert spreadsheet cell text to float; percent strings become fractions."""
    if val is None or val == "":
        return None
    if isinstance(val, bool):
        return float(val)
    if isinstance(val, (int, float)):
        return None if math.isnan(val) else float(val)
    s = str(val).strip()
    # Parenthetical negatives: (12.5) → -12.5
    if s.startswith('(') and s.endswith(')'):
        s = '-' + s[1:-1]
    is_percent = s.endswith('%')
    s = s.replace(',', '').replace('$', '').replace('%', '').strip()
    if s in ('', '-', '--', 'N/A', 'NA', 'n/a', 'nan', 'None'):
        return None
    try:
        out = float(s)
    except ValueError:
        return None
    return out / 100 if is_percent else out


def _clean_cell(field: str, val: Any) -> Any:
    if val is None or (isinstance(val, float) and math.isnan(val)):
        return None
    if field in _TEXT_FIELDS:
        s = str(val).strip()
        return s or None
    num = to_numeric(val)
    # keep unparseable text so validation can report it
    return num if num is not None else (str(val).strip() or None)


# ─── Frame → Rows ─────────────────────────────────────────────────────────────

def rows_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    columns = [normalize_header(c) for c in df.columns]
    rows: List[Dict[str, Any]] = []
    for record in df.itertuples(index=False, name=None):
        row = {col: _clean_cell(col, val) for col, val in zip(columns, record)}
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
    return rows


def parse_upload(file_bytes: bytes, filename: str) -> List[Dict[str, Any]]:
    """
    Parse uploaded file bytes into row dicts.
    Raises ValueError for unsupported extensions.
    """
    fn_lower = filename.lower()
    if fn_lower.endswith('.csv'):
        df = pd.read_csv(io.BytesIO(file_bytes), dtype=str, keep_default_na=False)
    elif fn_lower.endswith(('.xlsx', '.xls')):
        engine = 'openpyxl' if fn_lower.endswith('.xlsx') else 'xlrd'
        df = pd.read_excel(io.BytesIO(file_bytes), sheet_name=0, dtype=str, engine=engine)
    else:
        raise ValueError(f"Unsupported file type: {filename}")

    rows = rows_from_frame(df)
    logger.info("parsed %d rows from %s", len(rows), filename)
    return rows
