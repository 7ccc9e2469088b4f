"""Stock Platform — growth/profitability valuation of earning and revenue analyses."""
from .types import *
from .formatting import *
from .valuation import (
    EARNING_STRATEGY,
    REVENUE_STRATEGY,
    ValuationStrategy,
    process_analyses,
    process_earning_analyses,
    process_revenue_analyses,
    select_growth_years,
)
