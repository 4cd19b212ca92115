"""FX conversion helpers."""
from __future__ import annotations

from .models import Currency

DEFAULT_USD_THB_RATE = 34.5


def conversion_rate(
    currency: Currency | str,
    historical_rate: float | None = None,
    spot_rate: float = DEFAULT_USD_THB_RATE,
) -> float:
    """Return the multiplier that takes ``currency`` amounts into THB.

    A positive ``historical_rate`` (the snapshot taken when the transaction was
    booked) wins over ``spot_rate``.
    """

    if Currency(currency) is Currency.THB:
        return 1.0
    if historical_rate:
        return historical_rate
    return spot_rate


def to_base_currency(
    amount: float,
    currency: Currency | str,
    historical_rate: float | None = None,
    spot_rate: float = DEFAULT_USD_THB_RATE,
) -> float:
    """Convert ``amount`` into THB."""

    return amount * conversion_rate(currency, historical_rate, spot_rate)


__all__ = ["DEFAULT_USD_THB_RATE", "conversion_rate", "to_base_currency"]
