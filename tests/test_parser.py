"""
tests/test_parser.py
====================
Unit tests for stock_platform/parser.py — header normalisation, numeric
cleaning and CSV / XLSX upload parsing.
"""
import io

import pytest
from openpyxl import Workbook

from stock_platform.parser import normalize_header, parse_upload, to_numeric


class TestNormalizeHeader:
    @pytest.mark.parametrize("raw,expected", [
        ("Ticker", "ticker"),
        ("EPS Revision Grade", "eps_revision_grade"),
        ("epsGrowthAdjustedRate", "eps_growth_adjusted_rate"),
        ("operatingMargin", "operating_margin"),
        ("P/E", "pe"),
        ("P/S (FWD)", "ps"),
        ("  Price ", "price"),
        ("Symbol", "ticker"),
        ("Growth", "value"),
    ])
    def test_headers(self, raw, expected):
        assert normalize_header(raw) == expected


class TestToNumeric:
    def test_plain(self):
        assert to_numeric("150.25") == pytest.approx(150.25)

    def test_currency_and_thousands(self):
        assert to_numeric("$1,234.50") == pytest.approx(1234.5)

    def test_percent_becomes_fraction(self):
        assert to_numeric("15%") == pytest.approx(0.15)

    def test_parenthetical_negative(self):
        assert to_numeric("(12.5)") == pytest.approx(-12.5)

    @pytest.mark.parametrize("blank", [None, "", "-", "N/A", "nan", float("nan")])
    def test_blank_values(self, blank):
        assert to_numeric(blank) is None

    def test_text_is_none(self):
        assert to_numeric("abc") is None


class TestParseUpload:
    def test_csv(self):
        data = (
            "Ticker,Period,Price,P/E,ROA,EPS Revision Grade\n"
            "AAPL,3,150,25,15%,A\n"
            ",,,,,\n"
            "MSFT,3,$300.5,30,0.2,B+\n"
        ).encode()
        rows = parse_upload(data, "analyses.csv")
        assert len(rows) == 2
        assert rows[0] == {
            "ticker": "AAPL", "period": 3.0, "price": 150.0, "pe": 25.0,
            "roa": pytest.approx(0.15), "eps_revision_grade": "A",
        }
        assert rows[1]["price"] == pytest.approx(300.5)
        assert rows[1]["eps_revision_grade"] == "B+"

    def test_csv_blank_cells_are_none(self):
        rows = parse_upload(b"ticker,period,eps_growth_adjusted_rate\nAAPL,3,\n", "a.csv")
        assert rows[0]["eps_growth_adjusted_rate"] is None

    def test_unparseable_numbers_kept_for_validation(self):
        rows = parse_upload(b"ticker,price\nAAPL,abc\n", "a.csv")
        assert rows[0]["price"] == "abc"

    def test_xlsx(self):
        wb = Workbook()
        ws = wb.active
        ws.append(["Ticker", "Period", "Year", "Value"])
        ws.append(["AAPL", 3, 2022, 0.1])
        ws.append(["AAPL", 3, 2023, 0.2])
        buf = io.BytesIO()
        wb.save(buf)

        rows = parse_upload(buf.getvalue(), "growth.xlsx")
        assert [r["year"] for r in rows] == [2022.0, 2023.0]
        assert rows[1]["value"] == pytest.approx(0.2)
        assert rows[0]["ticker"] == "AAPL"

    def test_unsupported_extension(self):
        with pytest.raises(ValueError, match="Unsupported file type"):
            parse_upload(b"{}", "rows.json")
