"""Stock split normalisation applied before any cost calculation."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Sequence

from .models import StockSplit, Transaction

logger = logging.getLogger(__name__)


def apply_splits(
    transactions: Iterable[Transaction], splits: Sequence[StockSplit] | None = None
) -> List[Transaction]:
    """Return split-adjusted copies of ``transactions``.

    Splits are applied earliest first so several splits on one ticker compound.
    A transaction is adjusted only when it happened strictly before the split's
    effective date; ``total_value`` is left as booked.
    """

    adjusted = list(transactions)
    if not splits:
        return adjusted

    for split in sorted(splits, key=lambda s: s.effective_date):
        if split.ratio <= 0:
            logger.warning("Ignoring split %s on %s with ratio %s", split.id, split.ticker, split.ratio)
            continue
        for index, tx in enumerate(adjusted):
            if tx.ticker == split.ticker and tx.timestamp < split.effective_date:
                adjusted[index] = replace(
                    tx,
                    shares=tx.shares * split.ratio,
                    price_per_share=tx.price_per_share / split.ratio,
                )
    return adjusted


__all__ = ["apply_splits"]
