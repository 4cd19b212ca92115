"""Print holdings and totals from the local ledger."""

from __future__ import annotations

import argparse
import asyncio

from invest_tracker.config import get_settings
from invest_tracker.services.factory import open_portfolio_service
from invest_tracker.services.prices import USD_THB, StaticPriceFeed


def _parse_prices(values: list[str]) -> dict[str, float]:
    prices: dict[str, float] = {}
    for item in values:
        ticker, _, raw = item.partition("=")
        if not raw:
            raise SystemExit(f"Expected TICKER=PRICE, got {item!r}")
        prices[ticker.strip().upper()] = float(raw)
    return prices


async def _run(prices: dict[str, float], rate: float | None, show_closed: bool) -> None:
    settings = get_settings()
    feed = StaticPriceFeed(prices, spot_rates={USD_THB: rate or settings.default_exchange_rate})
    engine, service = await open_portfolio_service(settings, price_feed=feed, start=False)
    try:
        view = await service.view()
    finally:
        await engine.dispose()

    print(f"{'Ticker':<10}{'Shares':>14}{'Avg cost':>14}{'Value':>16}{'Unrealized':>16}{'Realized':>16}")
    for h in view.holdings:
        if h.is_closed and not show_closed:
            continue
        price_flag = "" if h.has_price_data else " (no price)"
        print(
            f"{h.ticker:<10}{h.total_shares:>14.4f}{h.average_cost:>14.2f}"
            f"{h.market_value:>16.2f}{h.unrealized_pl:>16.2f}{h.realized_pl:>16.2f}{price_flag}"
        )
    s = view.summary
    print()
    print(f"Total value:    {s.total_value:,.2f} {settings.base_currency}")
    print(f"Invested:       {s.total_invested:,.2f}")
    print(f"Realized P/L:   {s.total_realized_pl:,.2f}")
    print(f"Unrealized P/L: {s.total_unrealized_pl:,.2f}")
    print(f"Dividends:      {s.total_dividends:,.2f}")
    print(f"Total P/L:      {s.total_pl:,.2f} ({s.total_pl_percent:.2f}%)")
    if view.duplicate_ids:
        print(f"Ignored {len(view.duplicate_ids)} duplicate transaction rows")


def main() -> None:
    parser = argparse.ArgumentParser(description="Show the portfolio computed from local state")
    parser.add_argument("--price", action="append", default=[], metavar="TICKER=PRICE")
    parser.add_argument("--rate", type=float, default=None, help="USD/THB spot rate")
    parser.add_argument("--show-closed", action="store_true")
    args = parser.parse_args()
    asyncio.run(_run(_parse_prices(args.price), args.rate, args.show_closed))


if __name__ == "__main__":
    main()
