"""Progressive income tax bracket arithmetic (Thai personal income tax table)."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

# (upper limit of net income, marginal rate)
THAI_TAX_BRACKETS: Tuple[Tuple[float, float], ...] = (
    (150_000, 0.0),
    (300_000, 0.05),
    (500_000, 0.10),
    (750_000, 0.15),
    (1_000_000, 0.20),
    (2_000_000, 0.25),
    (5_000_000, 0.30),
    (math.inf, 0.35),
)


@dataclass(frozen=True)
class BracketTax:
    rate: float
    amount: float
    tax: float


@dataclass(frozen=True)
class TaxResult:
    total_tax: float
    marginal_rate: float
    brackets: List[BracketTax] = field(default_factory=list)


def calculate_income_tax(
    net_income: float, brackets: Sequence[Tuple[float, float]] = THAI_TAX_BRACKETS
) -> TaxResult:
    """Apply ``brackets`` to ``net_income``."""

    total = 0.0
    breakdown: List[BracketTax] = []
    previous_limit = 0.0
    for limit, rate in brackets:
        in_bracket = min(max(0.0, net_income - previous_limit), limit - previous_limit)
        if in_bracket > 0:
            tax = in_bracket * rate
            total += tax
            breakdown.append(BracketTax(rate=rate, amount=in_bracket, tax=tax))
        previous_limit = limit
    return TaxResult(
        total_tax=total,
        marginal_rate=breakdown[-1].rate if breakdown else 0.0,
        brackets=breakdown,
    )


__all__ = ["THAI_TAX_BRACKETS", "BracketTax", "TaxResult", "calculate_income_tax"]
