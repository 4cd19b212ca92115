"""Portfolio-wide summary statistics."""
from __future__ import annotations

from typing import Iterable, Sequence

from .fx import DEFAULT_USD_THB_RATE, to_base_currency
from .models import Holding, PortfolioSummary, Transaction, TransactionType


def calculate_summary(
    holdings: Sequence[Holding],
    transactions: Iterable[Transaction],
    exchange_rate: float = DEFAULT_USD_THB_RATE,
) -> PortfolioSummary:
    """Sum holdings and transaction-level P/L into one summary.

    Realized P/L and dividends are converted per transaction rather than taken
    from the holdings, so the same amount is never converted twice. Best and
    worst performers include closed positions.
    """

    total_value = sum(h.market_value for h in holdings)
    total_invested = sum(h.total_invested for h in holdings)
    total_unrealized_pl = sum(h.unrealized_pl for h in holdings)

    total_realized_pl = 0.0
    total_dividends = 0.0
    for tx in transactions:
        if tx.type is TransactionType.SELL and tx.realized_pl is not None:
            total_realized_pl += to_base_currency(tx.realized_pl, tx.currency, spot_rate=exchange_rate)
        elif tx.type is TransactionType.DIVIDEND:
            net = tx.total_value - (tx.withholding_tax or 0.0)
            total_dividends += to_base_currency(net, tx.currency, spot_rate=exchange_rate)

    total_pl = total_realized_pl + total_unrealized_pl + total_dividends
    total_pl_percent = total_pl / total_invested * 100 if total_invested > 0 else 0.0

    ranked = sorted(holdings, key=lambda h: h.unrealized_pl_percent, reverse=True)
    return PortfolioSummary(
        total_value=total_value,
        total_invested=total_invested,
        total_realized_pl=total_realized_pl,
        total_unrealized_pl=total_unrealized_pl,
        total_dividends=total_dividends,
        total_pl=total_pl,
        total_pl_percent=total_pl_percent,
        best_performer=ranked[0] if ranked else None,
        worst_performer=ranked[-1] if ranked else None,
    )


__all__ = ["calculate_summary"]
