"""Price feed contract plus in-memory and caching implementations."""

from __future__ import annotations

import logging
import time
from datetime import date, datetime
from typing import Callable, Mapping, Protocol, Sequence

logger = logging.getLogger(__name__)

USD_THB = "USDTHB"


class PriceFeed(Protocol):
    """Pluggable market data provider."""

    async def get_current_prices(self, tickers: Sequence[str]) -> dict[str, float]:
        ...

    async def get_historical_price(self, ticker: str, on: date) -> float | None:
        ...

    async def get_spot_rate(self, pair: str = USD_THB) -> float:
        ...


def find_price_on_date(series: Mapping[date, float], on: date | datetime) -> float | None:
    """Return the price for ``on``, snapping back to the closest earlier day."""

    target = on.date() if isinstance(on, datetime) else on
    if target in series:
        return series[target]
    earlier = [d for d in series if d < target]
    if not earlier:
        return None
    return series[max(earlier)]


class StaticPriceFeed:
    """Price feed answering from fixed maps, for tests and offline use."""

    def __init__(
        self,
        prices: Mapping[str, float] | None = None,
        *,
        spot_rates: Mapping[str, float] | None = None,
        history: Mapping[str, Mapping[date, float]] | None = None,
    ):
        self.prices = {ticker.upper(): float(price) for ticker, price in (prices or {}).items()}
        self.spot_rates = {pair.upper(): float(rate) for pair, rate in (spot_rates or {}).items()}
        self.history = {ticker.upper(): dict(series) for ticker, series in (history or {}).items()}

    async def get_current_prices(self, tickers: Sequence[str]) -> dict[str, float]:
        return {t.upper(): self.prices[t.upper()] for t in tickers if t.upper() in self.prices}

    async def get_historical_price(self, ticker: str, on: date) -> float | None:
        return find_price_on_date(self.history.get(ticker.upper(), {}), on)

    async def get_spot_rate(self, pair: str = USD_THB) -> float:
        return self.spot_rates.get(pair.upper(), 0.0)


class CachingPriceFeed:
    """Cache wrapper that also absorbs provider failures.

    Missing or failed quotes are simply left out of the result; a missing spot
    rate falls back to ``fallback_rate``.
    """

    def __init__(
        self,
        delegate: PriceFeed,
        *,
        ttl_seconds: float = 300,
        fallback_rate: float = 34.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.delegate = delegate
        self.ttl_seconds = ttl_seconds
        self.fallback_rate = fallback_rate
        self._clock = clock
        self._prices: dict[str, tuple[float, float]] = {}
        self._rates: dict[str, tuple[float, float]] = {}

    def _fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self.ttl_seconds

    async def get_current_prices(self, tickers: Sequence[str]) -> dict[str, float]:
        result: dict[str, float] = {}
        missing: list[str] = []
        for ticker in dict.fromkeys(t.upper() for t in tickers):
            cached = self._prices.get(ticker)
            if cached and self._fresh(cached[1]):
                result[ticker] = cached[0]
            else:
                missing.append(ticker)
        if not missing:
            return result
        try:
            fetched = await self.delegate.get_current_prices(missing)
        except Exception:
            logger.warning("Price feed failed for %s", ", ".join(missing), exc_info=True)
            return result
        now = self._clock()
        for ticker, price in fetched.items():
            if price and price > 0:
                self._prices[ticker.upper()] = (price, now)
                result[ticker.upper()] = price
        for ticker in missing:
            if ticker not in result:
                logger.warning("No price available for %s", ticker)
        return result

    async def get_historical_price(self, ticker: str, on: date) -> float | None:
        try:
            return await self.delegate.get_historical_price(ticker, on)
        except Exception:
            logger.warning("Historical price lookup failed for %s on %s", ticker, on, exc_info=True)
            return None

    async def get_spot_rate(self, pair: str = USD_THB) -> float:
        key = pair.upper()
        cached = self._rates.get(key)
        if cached and self._fresh(cached[1]):
            return cached[0]
        try:
            rate = await self.delegate.get_spot_rate(key)
        except Exception:
            logger.warning("Spot rate lookup for %s failed, using %.4f", key, self.fallback_rate, exc_info=True)
            return self.fallback_rate
        if not rate or rate <= 0:
            return self.fallback_rate
        self._rates[key] = (rate, self._clock())
        return rate


__all__ = ["USD_THB", "CachingPriceFeed", "PriceFeed", "StaticPriceFeed", "find_price_on_date"]
