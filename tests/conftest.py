"""
tests/conftest.py
=================
Shared pytest fixtures for the Stock Platform test suite.
"""
import os
import sys

import pytest

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from stock_platform.types import (  # noqa: E402
    EarningAnalysis, GrowthDatum, RevenueAnalysis, Sector, SectorRatio, Stock,
)


@pytest.fixture
def tech_sector():
    return Sector(id=1, name="Technology")


@pytest.fixture
def stock(tech_sector):
    return Stock(id=10, ticker="AAPL", company_name="Apple Inc.", sector=tech_sector)


@pytest.fixture
def other_stock(tech_sector):
    return Stock(id=11, ticker="MSFT", company_name="Microsoft Corp.", sector=tech_sector)


@pytest.fixture
def earning(stock):
    """The reference earning scenario: price 150, P/E 25, ROA 15%, sector PEG 1.2 / ROA 10%."""
    return EarningAnalysis(
        id=1, period=3, price=150.0, pe=25.0, roa=0.15, eps_revision_grade="A",
        stock=stock,
        eps_growth_data=[GrowthDatum(year=2022, value=0.10), GrowthDatum(year=2023, value=0.20)],
        sector_ratio=SectorRatio(sector_id=1, period=3, peg_ratio=1.2, roa=0.10),
    )


@pytest.fixture
def revenue(stock):
    """Negative sales growth scenario: price 100, P/S 5, average growth -5%."""
    return RevenueAnalysis(
        id=2, period=3, price=100.0, ps=5.0, operating_margin=0.20,
        stock=stock,
        sales_growth_data=[GrowthDatum(year=2022, value=-0.05)],
        sector_ratio=SectorRatio(sector_id=1, period=3, psg_ratio=1.5, operating_margin=0.10),
    )
