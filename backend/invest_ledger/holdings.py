"""Reduce the transaction history into one holding per ticker."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

from .fx import DEFAULT_USD_THB_RATE, conversion_rate, to_base_currency
from .models import Holding, Transaction, TransactionType

CLOSED_SHARES_EPSILON = 0.01
DUST_VALUE = 1.0


@dataclass
class _Position:
    shares: float
    total_cost: float
    category: str
    realized_pl: float = 0.0
    is_usd: bool = False


def calculate_holdings(
    transactions: Iterable[Transaction],
    current_prices: Mapping[str, float] | None = None,
    exchange_rate: float = DEFAULT_USD_THB_RATE,
    manual_prices: Mapping[str, float] | None = None,
    *,
    dust_value: float = DUST_VALUE,
) -> List[Holding]:
    """Compute holdings from FIFO-processed transactions.

    Cost basis is kept in THB using each buy's snapshotted rate where present.
    Sells reduce the cost basis at the running average cost, so the result does
    not depend on the order sells are seen in.
    """

    current_prices = current_prices or {}
    manual_prices = manual_prices or {}
    positions: Dict[str, _Position] = {}

    for tx in transactions:
        if tx.type is TransactionType.DIVIDEND:
            continue
        position = positions.setdefault(tx.ticker, _Position(shares=0.0, total_cost=0.0, category=tx.category))
        position.is_usd = position.is_usd or tx.is_usd

        if tx.type is TransactionType.BUY:
            position.shares += tx.shares
            position.total_cost += to_base_currency(
                tx.total_value + tx.commission, tx.currency, tx.exchange_rate, exchange_rate
            )
        else:
            if position.shares > 0:
                cost_per_share = position.total_cost / position.shares
                position.total_cost -= cost_per_share * tx.shares
            position.shares -= tx.shares
            if tx.realized_pl is not None:
                position.realized_pl += to_base_currency(tx.realized_pl, tx.currency, spot_rate=exchange_rate)

        position.category = tx.category

    return [
        _finalize(ticker, position, current_prices, manual_prices, exchange_rate, dust_value)
        for ticker, position in positions.items()
    ]


def _finalize(
    ticker: str,
    position: _Position,
    current_prices: Mapping[str, float],
    manual_prices: Mapping[str, float],
    exchange_rate: float,
    dust_value: float,
) -> Holding:
    live_price = current_prices.get(ticker) or 0.0
    manual_price = manual_prices.get(ticker) or 0.0
    current_price = live_price if live_price > 0 else manual_price
    has_price_data = current_price > 0

    raw_value = position.shares * current_price
    is_dust = has_price_data and 0 < raw_value < dust_value
    is_closed = position.shares <= CLOSED_SHARES_EPSILON or is_dust

    rate = conversion_rate("USD" if position.is_usd else "THB", spot_rate=exchange_rate)
    market_value = 0.0 if is_closed else position.shares * current_price * rate
    if is_closed or not has_price_data:
        unrealized_pl = 0.0
    else:
        unrealized_pl = market_value - position.total_cost
    if position.total_cost > 0 and not is_closed and has_price_data:
        unrealized_pl_percent = unrealized_pl / position.total_cost * 100
    else:
        unrealized_pl_percent = 0.0

    if position.shares > 0 and position.total_cost > 0:
        average_cost = position.total_cost / position.shares
    else:
        average_cost = 0.0

    return Holding(
        ticker=ticker,
        total_shares=0.0 if is_closed else position.shares,
        average_cost=average_cost,
        total_invested=0.0 if is_closed else position.total_cost,
        current_price=current_price,
        market_value=market_value,
        unrealized_pl=unrealized_pl,
        unrealized_pl_percent=unrealized_pl_percent,
        realized_pl=position.realized_pl,
        category=position.category,
        is_closed=is_closed,
        has_price_data=has_price_data,
    )


__all__ = ["CLOSED_SHARES_EPSILON", "DUST_VALUE", "calculate_holdings"]
