"""End-to-end recomputation of the portfolio view."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Sequence

from .fifo import recalculate_fifo
from .fx import DEFAULT_USD_THB_RATE
from .holdings import DUST_VALUE, calculate_holdings
from .ledger import deduplicate_transactions
from .models import Holding, PortfolioSummary, StockSplit, Transaction
from .splits import apply_splits
from .summary import calculate_summary


@dataclass(frozen=True)
class PortfolioView:
    """Everything derived from one pass over the ledger."""

    transactions: List[Transaction]
    holdings: List[Holding]
    summary: PortfolioSummary
    duplicate_ids: List[str] = field(default_factory=list)


def build_portfolio(
    transactions: Iterable[Transaction],
    splits: Sequence[StockSplit] | None = None,
    current_prices: Mapping[str, float] | None = None,
    exchange_rate: float = DEFAULT_USD_THB_RATE,
    manual_prices: Mapping[str, float] | None = None,
    *,
    dust_value: float = DUST_VALUE,
) -> PortfolioView:
    """Derive the full portfolio view from scratch.

    Nothing is carried over between calls: duplicates are removed, splits are
    re-applied and FIFO is re-run on every invocation.
    """

    unique, duplicate_ids = deduplicate_transactions(transactions)
    normalized = apply_splits(unique, splits)
    processed = recalculate_fifo(normalized)
    holdings = calculate_holdings(
        processed,
        current_prices,
        exchange_rate,
        manual_prices,
        dust_value=dust_value,
    )
    summary = calculate_summary(holdings, processed, exchange_rate)
    return PortfolioView(
        transactions=processed,
        holdings=holdings,
        summary=summary,
        duplicate_ids=duplicate_ids,
    )


__all__ = ["PortfolioView", "build_portfolio"]
