"""FIFO matching and realized P/L."""

from __future__ import annotations

import logging

import pytest

from invest_ledger.fifo import consume_lots, Lot, open_lots, realized_percent, recalculate_fifo
from invest_ledger.models import Transaction, TransactionType

from factories import at, buy, dividend, sell


def _sells(transactions):
    return [tx for tx in transactions if tx.type is TransactionType.SELL]


def test_sell_consumes_oldest_lots_first():
    transactions = [buy("ABC", 100, 10, day=0), buy("ABC", 100, 15, day=1), sell("ABC", 120, 20, day=2)]

    (sale,) = _sells(recalculate_fifo(transactions))

    # 100 x (20 - 10) + 20 x (20 - 15)
    assert sale.realized_pl == pytest.approx(1100)
    assert sale.realized_pl_percent == pytest.approx(1100 / 1300 * 100)


def test_commissions_enter_cost_and_reduce_proceeds():
    transactions = [buy("ABC", 100, 10, day=0, commission=5), sell("ABC", 50, 12, day=1, commission=2)]

    (sale,) = _sells(recalculate_fifo(transactions))

    assert sale.realized_pl == pytest.approx(600 - 50 * 10.05 - 2)


def test_input_order_does_not_matter():
    transactions = [sell("ABC", 50, 20, day=3), buy("ABC", 50, 15, day=1), buy("ABC", 50, 10, day=0)]

    processed = recalculate_fifo(transactions)

    assert [tx.timestamp for tx in processed] == sorted(tx.timestamp for tx in processed)
    assert _sells(processed)[0].realized_pl == pytest.approx(500)


def test_lot_shares_are_conserved():
    transactions = [
        buy("ABC", 100, 10, day=0),
        buy("ABC", 50, 12, day=1),
        sell("ABC", 120, 20, day=2),
        buy("XYZ", 10, 5, day=2),
    ]

    lots = open_lots(transactions)

    assert [lot.remaining for lot in lots["ABC"]] == [pytest.approx(30)]
    assert lots["ABC"][0].id == transactions[1].id
    assert sum(lot.remaining for lot in lots["XYZ"]) == pytest.approx(10)


def test_tickers_are_matched_independently():
    transactions = [buy("AAA", 10, 10, day=0), buy("BBB", 10, 50, day=1), sell("AAA", 10, 11, day=2)]

    (sale,) = _sells(recalculate_fifo(transactions))

    assert sale.realized_pl == pytest.approx(10)


def test_oversell_books_unmatched_shares_at_zero_cost(caplog):
    transactions = [buy("ABC", 10, 5, day=0), sell("ABC", 15, 10, day=1)]

    with caplog.at_level(logging.WARNING):
        (sale,) = _sells(recalculate_fifo(transactions))

    assert sale.realized_pl == pytest.approx(150 - 50)
    assert "exceeds open lots" in caplog.text


def test_manual_override_wins_over_calculation():
    transactions = [buy("ABC", 10, 10, day=0), sell("ABC", 10, 12, day=1, manual_realized_pl=42.0)]

    (sale,) = _sells(recalculate_fifo(transactions))

    assert sale.realized_pl == 42.0
    assert sale.realized_pl_percent == pytest.approx(42 / (120 - 42) * 100)


def test_zero_share_buy_becomes_zero_cost_lot(caplog):
    empty_buy = Transaction(
        id="empty",
        ticker="ABC",
        type=TransactionType.BUY,
        shares=0,
        price_per_share=10,
        total_value=0,
        commission=0,
        timestamp=at(0),
    )

    with caplog.at_level(logging.WARNING):
        lots = open_lots([empty_buy])

    assert lots["ABC"] == []
    assert "zero shares" in caplog.text


def test_recalculation_is_idempotent():
    transactions = [buy("ABC", 10, 10, day=0), sell("ABC", 4, 15, day=1), dividend("ABC", 30, day=2)]

    once = recalculate_fifo(transactions)
    twice = recalculate_fifo(once)

    assert once == twice


def test_dividends_pass_through_untouched():
    payout = dividend("ABC", 100, day=1, withholding_tax=10)

    (processed,) = recalculate_fifo([payout])

    assert processed == payout


def test_consume_lots_reports_unmatched_quantity():
    lots = [Lot(id="a", shares=5, cost_per_share=2.0, remaining=5), Lot(id="b", shares=5, cost_per_share=4.0, remaining=5)]

    cost, unmatched = consume_lots(lots, 12)

    assert cost == pytest.approx(5 * 2 + 5 * 4)
    assert unmatched == pytest.approx(2)
    assert [lot.remaining for lot in lots] == [0, 0]


@pytest.mark.parametrize(
    ("sale_value", "realized", "commission", "expected"),
    [
        (1200, 200, 0, 20.0),
        (100, 100, 0, 100.0),
        (100, 150, 0, 0.0),
    ],
)
def test_realized_percent_edges(sale_value, realized, commission, expected):
    assert realized_percent(sale_value, realized, commission) == pytest.approx(expected)
