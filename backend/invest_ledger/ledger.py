"""Helpers for cleaning and querying a raw transaction list."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .models import Transaction, TransactionType, as_utc

logger = logging.getLogger(__name__)


def deduplicate_transactions(transactions: Iterable[Transaction]) -> Tuple[List[Transaction], List[str]]:
    """Keep the first record for every id.

    A repeated id means a record was written twice; later copies are dropped and
    their ids returned so the caller can report them.
    """

    seen: set[str] = set()
    unique: List[Transaction] = []
    duplicates: List[str] = []
    for tx in transactions:
        if tx.id in seen:
            duplicates.append(tx.id)
            continue
        seen.add(tx.id)
        unique.append(tx)
    if duplicates:
        logger.warning(
            "Removed %d duplicate transactions by id (first ids: %s)",
            len(duplicates),
            ", ".join(duplicates[:10]),
        )
    return unique, duplicates


def strip_realized_pl(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Drop computed realized P/L from sells so a recomputation starts clean."""

    return [
        replace(tx, realized_pl=None, realized_pl_percent=None) if tx.type is TransactionType.SELL else tx
        for tx in transactions
    ]


@dataclass
class FilterOptions:
    ticker: Optional[str] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    profit_only: bool = False
    loss_only: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def filter_transactions(transactions: Iterable[Transaction], filters: FilterOptions) -> List[Transaction]:
    """Return the transactions matching every set filter.

    Profit/loss filters only look at sells; other types pass through them.
    """

    start = as_utc(filters.start_date) if filters.start_date else None
    end = as_utc(filters.end_date) if filters.end_date else None
    ticker = filters.ticker.strip().upper() if filters.ticker else None
    tx_type = TransactionType(filters.type) if filters.type else None

    selected: List[Transaction] = []
    for tx in transactions:
        if ticker and tx.ticker != ticker:
            continue
        if tx_type and tx.type is not tx_type:
            continue
        if filters.category and tx.category != filters.category:
            continue
        is_sell = tx.type is TransactionType.SELL
        if filters.profit_only and is_sell and (tx.realized_pl or 0.0) <= 0:
            continue
        if filters.loss_only and is_sell and (tx.realized_pl or 0.0) >= 0:
            continue
        if start and tx.timestamp < start:
            continue
        if end and tx.timestamp > end:
            continue
        selected.append(tx)
    return selected


__all__ = ["FilterOptions", "deduplicate_transactions", "filter_transactions", "strip_realized_pl"]
