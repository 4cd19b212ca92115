"""Portfolio summary and end-to-end recomputation."""

from __future__ import annotations

import pytest

from invest_ledger.ledger import strip_realized_pl
from invest_ledger.pipeline import build_portfolio
from invest_ledger.summary import calculate_summary

from factories import buy, dividend, sell, split


def test_dividend_counts_net_of_withholding():
    view = build_portfolio([dividend("PTT", 500, withholding_tax=50)])

    assert view.summary.total_dividends == pytest.approx(450)
    assert view.summary.total_pl == pytest.approx(450)
    # Nothing invested, so no percentage.
    assert view.summary.total_pl_percent == 0


def test_usd_dividend_uses_spot_rate():
    view = build_portfolio([dividend("AAPL", 10, currency="USD", withholding_tax=1.5, exchange_rate=30)], exchange_rate=36)

    assert view.summary.total_dividends == pytest.approx(8.5 * 36)


def test_totals_combine_realized_unrealized_and_dividends():
    transactions = [
        buy("PTT", 100, 30, day=0),
        sell("PTT", 50, 36, day=1),
        buy("AAPL", 10, 10, day=2, currency="USD", exchange_rate=35),
        dividend("PTT", 100, day=3),
    ]

    view = build_portfolio(transactions, [], {"PTT": 40.0, "AAPL": 11.0}, 36.0)
    summary = view.summary

    assert summary.total_value == pytest.approx(50 * 40 + 10 * 11 * 36)
    assert summary.total_invested == pytest.approx(1500 + 3500)
    assert summary.total_realized_pl == pytest.approx(300)
    assert summary.total_unrealized_pl == pytest.approx((2000 - 1500) + (3960 - 3500))
    assert summary.total_dividends == pytest.approx(100)
    assert summary.total_pl == pytest.approx(300 + 960 + 100)
    assert summary.total_pl_percent == pytest.approx(1360 / 5000 * 100)


def test_best_and_worst_performers():
    transactions = [buy("UP", 10, 10), buy("FLAT", 10, 10), buy("DOWN", 10, 10)]

    view = build_portfolio(transactions, [], {"UP": 15.0, "FLAT": 10.0, "DOWN": 8.0})

    assert view.summary.best_performer.ticker == "UP"
    assert view.summary.worst_performer.ticker == "DOWN"


def test_empty_portfolio():
    summary = calculate_summary([], [])

    assert summary.total_value == 0
    assert summary.total_pl_percent == 0
    assert summary.best_performer is None
    assert summary.worst_performer is None


def test_recomputation_is_stable():
    transactions = [
        buy("PTT", 100, 30, day=0),
        sell("PTT", 40, 35, day=3, manual_realized_pl=180.0),
        sell("PTT", 10, 20, day=4),
        dividend("PTT", 120, day=5, withholding_tax=12),
    ]
    splits = [split("PTT", 2, day=2)]
    prices = {"PTT": 18.0}

    first = build_portfolio(transactions, splits, prices, 36.0)
    second = build_portfolio(strip_realized_pl(transactions), splits, prices, 36.0)

    assert first.summary == second.summary
    assert first.holdings == second.holdings


def test_duplicate_ids_are_dropped_and_reported():
    original = buy("PTT", 10, 10)

    view = build_portfolio([original, original], [], {"PTT": 10.0})

    assert view.duplicate_ids == [original.id]
    assert view.holdings[0].total_shares == pytest.approx(10)
