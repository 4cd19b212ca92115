"""Core package for the Invest Tracker ledger and valuation engine."""

from .fifo import Lot, open_lots, recalculate_fifo
from .holdings import calculate_holdings
from .models import (
    Currency,
    Holding,
    PortfolioSummary,
    StockSplit,
    Transaction,
    TransactionType,
)
from .pipeline import PortfolioView, build_portfolio
from .splits import apply_splits
from .summary import calculate_summary

__all__ = [
    "Currency",
    "Holding",
    "Lot",
    "PortfolioSummary",
    "PortfolioView",
    "StockSplit",
    "Transaction",
    "TransactionType",
    "apply_splits",
    "build_portfolio",
    "calculate_holdings",
    "calculate_summary",
    "open_lots",
    "recalculate_fifo",
]
