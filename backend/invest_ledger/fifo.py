"""FIFO cost-basis matching and realized P/L per sale."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Tuple

from .models import Transaction, TransactionType

logger = logging.getLogger(__name__)

EPSILON = 1e-6


@dataclass
class Lot:
    """Inventory left from one buy. ``remaining`` only ever goes down."""

    id: str
    shares: float
    cost_per_share: float
    remaining: float


def _lot_from_buy(tx: Transaction) -> Lot:
    if tx.shares:
        cost_per_share = (tx.total_value + tx.commission) / tx.shares
    else:
        logger.warning("Buy %s on %s has zero shares, booking a zero-cost lot", tx.id, tx.ticker)
        cost_per_share = 0.0
    return Lot(id=tx.id, shares=tx.shares, cost_per_share=cost_per_share, remaining=tx.shares)


def consume_lots(lots: List[Lot], shares: float) -> Tuple[float, float]:
    """Take ``shares`` from ``lots`` oldest first.

    Returns the cost of the shares taken and the quantity that could not be
    matched against any lot.
    """

    to_sell = shares
    total_cost = 0.0
    for lot in lots:
        if to_sell <= EPSILON:
            break
        if lot.remaining <= EPSILON:
            continue
        taking = min(lot.remaining, to_sell)
        total_cost += taking * lot.cost_per_share
        lot.remaining -= taking
        to_sell -= taking
    return total_cost, max(to_sell, 0.0)


def realized_percent(sale_value: float, realized_pl: float, commission: float) -> float:
    implied_cost = sale_value - realized_pl - commission
    if implied_cost > 0:
        return realized_pl / implied_cost * 100
    if implied_cost == 0:
        # Shares acquired at no cost.
        return 100.0
    return 0.0


def _run(transactions: Iterable[Transaction]) -> Tuple[List[Transaction], Dict[str, List[Lot]]]:
    ordered = sorted(transactions, key=lambda tx: tx.timestamp)
    inventory: Dict[str, List[Lot]] = {}
    processed: List[Transaction] = []

    for tx in ordered:
        if tx.type is TransactionType.BUY:
            inventory.setdefault(tx.ticker, []).append(_lot_from_buy(tx))
            processed.append(tx)
        elif tx.type is TransactionType.SELL:
            total_cost, unmatched = consume_lots(inventory.get(tx.ticker, []), tx.shares)
            if unmatched > EPSILON:
                logger.warning(
                    "Sell %s on %s exceeds open lots by %.6f shares; unmatched shares carry no cost",
                    tx.id,
                    tx.ticker,
                    unmatched,
                )
            sale_value = tx.shares * tx.price_per_share
            calculated = sale_value - total_cost - tx.commission
            realized = tx.manual_realized_pl if tx.manual_realized_pl is not None else calculated
            processed.append(
                replace(
                    tx,
                    realized_pl=realized,
                    realized_pl_percent=realized_percent(sale_value, realized, tx.commission),
                )
            )
        else:
            processed.append(tx)
    return processed, inventory


def recalculate_fifo(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Return ``transactions`` in time order with realized P/L set on every sell.

    Expects split-normalised input.
    """

    processed, _ = _run(transactions)
    return processed


def open_lots(transactions: Iterable[Transaction]) -> Dict[str, List[Lot]]:
    """Return the per-ticker lot inventory left after a full FIFO pass."""

    _, inventory = _run(transactions)
    return {
        ticker: [lot for lot in lots if lot.remaining > EPSILON]
        for ticker, lots in inventory.items()
    }


__all__ = ["EPSILON", "Lot", "consume_lots", "open_lots", "realized_percent", "recalculate_fifo"]
