"""
tests/test_formatting.py
========================
Unit tests for stock_platform/formatting.py
"""
import pytest

from stock_platform.formatting import (
    format_currency, format_number, format_percent, format_ratio,
    grade_color, growth_column_label, period_label, upside_color,
)


class TestFormatters:
    def test_percent(self):
        assert format_percent(0.1327) == "13.27%"
        assert format_percent(-0.0025) == "-0.25%"
        assert format_percent(None) == "-"

    def test_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-40) == "-$40.00"
        assert format_currency(None) == "-"

    def test_ratio_and_number(self):
        assert format_ratio(25 / 15) == "1.67"
        assert format_number(1234567.891) == "1,234,567.89"
        assert format_ratio(None) == "-"

    def test_labels(self):
        assert period_label(3) == "P3"
        assert growth_column_label(0) == "EPS Growth +0"
        assert growth_column_label(2, "Sales Growth") == "Sales Growth +2"


class TestUpsideColor:
    @pytest.mark.parametrize("value", [0.0, 0.05, -0.05, 0.03, None])
    def test_neutral(self, value):
        assert upside_color(value) is None

    def test_strong_positive_saturates(self):
        assert upside_color(0.5) == "rgb(0, 190, 20)"

    def test_weak_positive_has_minimum(self):
        assert upside_color(0.1) == "rgb(0, 130, 20)"

    def test_strong_negative_saturates(self):
        assert upside_color(-0.4) == "rgb(255, 0, 0)"

    def test_weak_negative_has_minimum(self):
        assert upside_color(-0.1) == "rgb(200, 0, 0)"

    def test_half_channel_rounds_up(self):
        # 0.75 * 190 == 142.5
        assert upside_color(0.75, intensity_cap=1.0) == "rgb(0, 143, 20)"

    def test_custom_band(self):
        assert upside_color(0.1, neutral_band=0.2) is None


class TestGradeColor:
    @pytest.mark.parametrize("grade,color", [
        ("A+", "#4caf50"), ("A-", "#4caf50"),
        ("B", "#ff9800"), ("C+", "#2196f3"), ("D-", "#ff5722"),
        ("F", "#9e9e9e"), ("", "#9e9e9e"),
    ])
    def test_colors(self, grade, color):
        assert grade_color(grade) == color
