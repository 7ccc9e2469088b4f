"""
tests/test_market.py
====================
Unit tests for stock_platform/market.py. yfinance is replaced with a fake
Ticker so no network access is needed.
"""
import pandas as pd
import pytest

import stock_platform.market as market
from stock_platform.market import (
    Quote, drawdown_from_high, fetch_price_history, fetch_quote, fetch_quotes,
    quote_columns, week52_high,
)


class _FakeTicker:
    info_by_ticker = {}
    history_frame = pd.DataFrame()

    def __init__(self, ticker):
        self.ticker = ticker

    def get_info(self):
        if self.ticker == "BOOM":
            raise RuntimeError("rate limited")
        return self.info_by_ticker.get(self.ticker, {})

    def history(self, period="1y", interval="1d"):
        return self.history_frame


@pytest.fixture
def fake_yf(monkeypatch):
    _FakeTicker.info_by_ticker = {
        "AAPL": {"regularMarketPrice": 180.0, "previousClose": 178.5,
                 "fiftyTwoWeekHigh": 200.0, "fiftyTwoWeekLow": 150.0, "currency": "USD"},
        "MSFT": {"currentPrice": "410.5"},
    }
    _FakeTicker.history_frame = pd.DataFrame({"High": [400.0, 450.0, 420.0], "Close": [390.0, 440.0, 410.0]})
    monkeypatch.setattr(market.yf, "Ticker", _FakeTicker)
    return _FakeTicker


class TestFetchQuote:
    def test_full_quote(self, fake_yf):
        q = fetch_quote("AAPL")
        assert q.price == 180.0
        assert q.previous_close == 178.5
        assert q.week52_high == 200.0
        assert q.currency == "USD"

    def test_high_falls_back_to_history(self, fake_yf):
        q = fetch_quote("MSFT")
        assert q.price == pytest.approx(410.5)
        assert q.week52_high == 450.0

    def test_no_price(self, fake_yf):
        assert fetch_quote("NOPE") is None

    def test_failure_returns_none(self, fake_yf):
        assert fetch_quote("BOOM") is None

    def test_fetch_quotes_skips_missing(self, fake_yf):
        quotes = fetch_quotes(["AAPL", "NOPE", "BOOM"])
        assert list(quotes) == ["AAPL"]


class TestHistory:
    def test_history_passthrough(self, fake_yf):
        assert len(fetch_price_history("AAPL")) == 3

    def test_week52_high_prefers_high_column(self):
        assert week52_high(pd.DataFrame({"High": [1.0, 3.0], "Close": [5.0, 6.0]})) == 3.0

    def test_week52_high_close_fallback(self):
        assert week52_high(pd.DataFrame({"Close": [5.0, 6.0]})) == 6.0

    def test_week52_high_empty(self):
        assert week52_high(pd.DataFrame()) is None


class TestDrawdown:
    def test_below_high(self):
        assert drawdown_from_high(180.0, 200.0) == pytest.approx(-0.10)

    def test_missing_high(self):
        assert drawdown_from_high(180.0, None) is None
        assert drawdown_from_high(180.0, 0.0) is None

    def test_quote_columns(self):
        cols = quote_columns(Quote(ticker="AAPL", price=180.0, week52_high=200.0))
        assert cols["Live Price"] == 180.0
        assert cols["Decline From High"] == pytest.approx(-0.10)

    def test_quote_columns_without_quote(self):
        assert quote_columns(None) == {"Live Price": None, "52W High": None, "Decline From High": None}
