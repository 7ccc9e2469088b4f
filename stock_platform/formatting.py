"""
stock_platform/formatting.py
============================
Percent / currency / ratio formatting and colour helpers for the
analysis grids and exports.
"""
from __future__ import annotations
import math
from typing import Optional


def format_percent(value: Optional[float], decimals: int = 2) -> str:
    """Fraction → percent string. e.g. 0.1327 → 13.27%"""
    if value is None:
        return "-"
    return f"{value * 100:.{decimals}f}%"


def format_currency(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "-"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_ratio(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:.{decimals}f}"


def format_number(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:,.{decimals}f}"


def period_label(period: int) -> str:
    """Reporting cycle label. Periods are cycle numbers, not calendar years."""
    return f"P{period}"


def growth_column_label(index: int, prefix: str = "EPS Growth") -> str:
    return f"{prefix} +{index}"


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def upside_color(
    value: Optional[float],
    neutral_band: float = 0.05,
    intensity_cap: float = 0.4,
) -> Optional[str]:
    """
    Text colour for an upside-potential cell.

    Inside ±neutral_band → None (default text colour). Beyond it the red or
    green channel scales with magnitude, saturating at ``intensity_cap``.
    """
    if value is None:
        return None
    intensity = min(abs(value) / intensity_cap, 1.0)
    if value < -neutral_band:
        red = _round_half_up(max(intensity * 255, 200))
        return f"rgb({red}, 0, 0)"
    if value > neutral_band:
        green = _round_half_up(max(intensity * 190, 130))
        return f"rgb(0, {green}, 20)"
    return None


def grade_color(grade: str) -> str:
    """Chip colour for an EPS revision grade."""
    if grade.startswith("A"):
        return "#4caf50"
    elif grade.startswith("B"):
        return "#ff9800"
    elif grade.startswith("C"):
        return "#2196f3"
    elif grade.startswith("D"):
        return "#ff5722"
    return "#9e9e9e"
