"""
stock_platform/market.py
========================
Quote and price-history pulls from Yahoo Finance (yfinance), plus the
52-week-high / drawdown figures shown next to the revenue analyses.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import pandas as pd
import yfinance as yf

logger = logging.getLogger(__name__)


@dataclass
class Quote:
    ticker: str
    price: Optional[float] = None
    previous_close: Optional[float] = None
    week52_high: Optional[float] = None
    week52_low: Optional[float] = None
    currency: Optional[str] = None


def _info(tk: "yf.Ticker") -> dict:
    info = getattr(tk, "get_info", lambda: {})()
    if not isinstance(info, dict):
        info = getattr(tk, "info", {}) or {}
    return info


def _float(v) -> Optional[float]:
    try:
        return float(v) if v is not None else None
    except (TypeError, ValueError):
        return None


def fetch_quote(ticker: str) -> Optional[Quote]:
    """Latest quote for ``ticker``; None when Yahoo returns nothing usable."""
    try:
        info = _info(yf.Ticker(ticker))
    except Exception as exc:
        logger.warning("%s: quote fetch failed: %s", ticker, exc)
        return None
    price = _float(info.get("regularMarketPrice") or info.get("currentPrice"))
    if price is None:
        logger.warning("%s: no market price in quote", ticker)
        return None
    high = _float(info.get("fiftyTwoWeekHigh"))
    if high is None:
        high = week52_high(fetch_price_history(ticker))
    return Quote(
        ticker=ticker.upper(),
        price=price,
        previous_close=_float(info.get("regularMarketPreviousClose") or info.get("previousClose")),
        week52_high=high,
        week52_low=_float(info.get("fiftyTwoWeekLow")),
        currency=info.get("currency"),
    )


def fetch_quotes(tickers: Iterable[str]) -> Dict[str, Quote]:
    quotes: Dict[str, Quote] = {}
    for t in tickers:
        q = fetch_quote(t)
        if q is not None:
            quotes[q.ticker] = q
    return quotes


def fetch_price_history(ticker: str, period: str = "1y", interval: str = "1d") -> pd.DataFrame:
    """OHLCV history indexed by date; empty frame on failure."""
    try:
        hist = yf.Ticker(ticker).history(period=period, interval=interval)
    except Exception as exc:
        logger.warning("%s: history fetch failed: %s", ticker, exc)
        return pd.DataFrame()
    if not isinstance(hist, pd.DataFrame):
        return pd.DataFrame()
    return hist


def week52_high(history: pd.DataFrame) -> Optional[float]:
    if history is None or history.empty:
        return None
    col = "High" if "High" in history.columns else "Close"
    if col not in history.columns:
        return None
    highs = pd.to_numeric(history[col], errors="coerce").dropna()
    return float(highs.max()) if not highs.empty else None


def drawdown_from_high(price: Optional[float], high: Optional[float]) -> Optional[float]:
    """Fractional decline from the peak: price / high - 1 (<= 0 below the high)."""
    if price is None or not high or high <= 0:
        return None
    return price / high - 1


def quote_columns(quote: Optional[Quote]) -> Dict[str, Optional[float]]:
    """Extra grid columns for a ticker: live price, 52-week high and decline from it."""
    if quote is None:
        return {"Live Price": None, "52W High": None, "Decline From High": None}
    return {
        "Live Price": quote.price,
        "52W High": quote.week52_high,
        "Decline From High": drawdown_from_high(quote.price, quote.week52_high),
    }
