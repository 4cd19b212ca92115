"""Portfolio service: local-first edits, recomputation and sync."""

from __future__ import annotations

import pytest

from invest_ledger.models import TransactionType
from invest_tracker.services.portfolio import PortfolioService
from invest_tracker.sync.queue import ChangeKind, ChangeType
from invest_tracker.sync.remote import FatalRemoteError, InMemoryRowStore

from factories import buy, dividend, sell, split


async def test_add_transaction_recomputes_and_queues(service, repository):
    view = await service.add_transaction(buy("PTT", 100, 30))

    assert view.holdings[0].market_value == pytest.approx(100 * 40)
    assert [c.type for c in service.queue.pending] == [ChangeType.ADD]
    assert len(await repository.load_transactions()) == 1
    assert len(await repository.load_pending_changes()) == 1


async def test_duplicate_add_is_rejected(service):
    tx = buy("PTT", 1, 1)
    await service.add_transaction(tx)

    with pytest.raises(ValueError):
        await service.add_transaction(tx)


async def test_update_rederives_total_value(service):
    tx = buy("PTT", 10, 30)
    await service.add_transaction(tx)

    view = await service.update_transaction(tx.id, shares=20)

    assert service.get_transaction(tx.id).total_value == pytest.approx(600)
    assert view.holdings[0].total_invested == pytest.approx(600)
    # Still a single add in the queue.
    assert [c.type for c in service.queue.pending] == [ChangeType.ADD]
    assert service.queue.pending[0].transaction.shares == 20


async def test_update_rejects_unknown_or_computed_fields(service):
    tx = buy("PTT", 10, 30)
    await service.add_transaction(tx)

    with pytest.raises(ValueError):
        await service.update_transaction(tx.id, realized_pl=5.0)
    with pytest.raises(ValueError):
        await service.update_transaction(tx.id, ticker=None)
    with pytest.raises(LookupError):
        await service.update_transaction("missing", shares=1)


async def test_delete_of_unsynced_add_leaves_nothing_queued(service):
    tx = buy("PTT", 10, 30)
    await service.add_transaction(tx)

    view = await service.delete_transaction(tx.id)

    assert view.holdings == []
    assert len(service.queue) == 0


async def test_manual_realized_pl_only_on_sells(service):
    purchase, sale = buy("PTT", 10, 30, day=0), sell("PTT", 5, 40, day=1)
    await service.add_transaction(purchase)
    await service.add_transaction(sale)

    view = await service.set_manual_realized_pl(sale.id, 7.0)

    assert next(tx for tx in view.transactions if tx.id == sale.id).realized_pl == 7.0
    with pytest.raises(ValueError):
        await service.set_manual_realized_pl(purchase.id, 7.0)


async def test_split_is_queued_and_applied(service):
    await service.add_transaction(buy("PTT", 10, 300, day=0))

    view = await service.add_split(split("PTT", 10, day=5, split_id="s1"))

    assert view.holdings[0].total_shares == pytest.approx(100)
    assert service.queue.pending[-1].kind is ChangeKind.SPLIT

    await service.remove_split("s1")
    assert all(c.kind is ChangeKind.TRANSACTION for c in service.queue.pending)
    with pytest.raises(LookupError):
        await service.remove_split("s1")


async def test_manual_price_used_when_feed_has_none(service):
    await service.add_transaction(buy("NEW", 10, 10))

    view = await service.set_manual_price("new", 12.0)
    assert view.holdings[0].has_price_data
    assert view.holdings[0].unrealized_pl == pytest.approx(20)

    view = await service.set_manual_price("NEW", None)
    assert not view.holdings[0].has_price_data


async def test_categories_include_defaults_and_custom(service):
    categories = await service.add_category("dividend")

    assert categories[-1] == "dividend"
    assert "long-term" in categories
    assert await service.add_category("dividend") == categories
    with pytest.raises(ValueError):
        await service.add_category("  ")


async def test_hidden_categories_drop_out_of_the_offered_list(service, repository):
    await service.add_category("dividend")

    categories = await service.set_category_hidden("dividend", True)

    assert "dividend" not in categories
    assert service.hidden_categories == ["dividend"]
    assert await repository.load_hidden_categories() == ["dividend"]
    assert await service.add_category("dividend") == categories
    assert "dividend" in await service.set_category_hidden("dividend", False)
    with pytest.raises(LookupError):
        await service.set_category_hidden("unknown", True)


async def test_reset_shows_hidden_categories_again(service):
    await service.set_category_hidden("long-term", True)

    await service.reset()

    assert service.hidden_categories == []
    assert "long-term" in service.categories


async def test_import_skips_known_ids(service):
    existing = buy("PTT", 1, 1)
    await service.add_transaction(existing)

    imported = await service.import_transactions([existing, buy("SCB", 1, 1), dividend("PTT", 10)])

    assert imported == 2
    assert len(service.transactions) == 3


async def test_start_drains_changes_left_from_last_session(repository, remote, price_feed, settings):
    offline = PortfolioService(repository, remote=None, price_feed=price_feed, settings=settings)
    await offline.load()
    tx = buy("PTT", 10, 30)
    await offline.add_transaction(tx)

    restarted = PortfolioService(repository, remote=remote, price_feed=price_feed, settings=settings)
    await restarted.start()

    assert tx.id in remote.transactions
    status = await restarted.sync_status()
    assert status.pending_count == 0
    assert status.last_synced is not None


async def test_outage_keeps_local_state_and_reports_pending(service, remote):
    remote.available = False
    await service.add_transaction(buy("PTT", 10, 30))

    assert await service.on_connectivity_restored() == 0
    status = await service.sync_status()
    assert status.pending_count == 1
    assert not status.online
    assert status.last_error

    remote.available = True
    assert await service.on_connectivity_restored() == 1
    status = await service.sync_status()
    assert status.pending_count == 0
    assert status.online


async def test_rejected_background_drain_is_reported_not_raised(repository, price_feed, settings):
    class Forbidden(InMemoryRowStore):
        async def append(self, transaction):
            raise FatalRemoteError("POST /transactions returned 403", 403)

    service = PortfolioService(repository, remote=Forbidden(), price_feed=price_feed, settings=settings)
    await service.add_transaction(buy("PTT", 1, 1))

    assert await service.on_connectivity_restored() == 0
    status = await service.sync_status()
    assert status.pending_count == 1
    assert status.online
    assert "403" in status.last_error

    restarted = PortfolioService(repository, remote=Forbidden(), price_feed=price_feed, settings=settings)
    await restarted.start()
    assert len(restarted.transactions) == 1
    assert (await restarted.view()).holdings

    with pytest.raises(FatalRemoteError):
        await restarted.sync()


async def test_sync_pushes_then_adopts_remote(service, remote):
    remote_only = buy("SCB", 5, 100, day=0)
    remote.transactions[remote_only.id] = remote_only
    remote.splits["rs"] = split("SCB", 2, day=3, split_id="rs")
    local = buy("PTT", 10, 30, day=1)
    await service.add_transaction(local)

    view = await service.sync()

    assert {tx.id for tx in service.transactions} == {remote_only.id, local.id}
    assert [s.id for s in service.splits] == ["rs"]
    scb = next(h for h in view.holdings if h.ticker == "SCB")
    assert scb.total_shares == pytest.approx(10)
    assert len(service.queue) == 0


async def test_sync_without_remote_is_an_error(repository, price_feed, settings):
    service = PortfolioService(repository, price_feed=price_feed, settings=settings)

    with pytest.raises(RuntimeError):
        await service.sync()


async def test_reset_queues_deletes_for_synced_records(service, remote):
    tx = buy("PTT", 10, 30)
    await service.add_transaction(tx)
    await service.sync()

    view = await service.reset()

    assert view.holdings == []
    assert [(c.type, c.id) for c in service.queue.pending] == [(ChangeType.DELETE, tx.id)]
    await service.sync()
    assert remote.transactions == {}


async def test_clear_local_data_forgets_everything(service, repository):
    await service.add_transaction(buy("PTT", 10, 30))

    await service.clear_local_data()

    assert service.transactions == []
    assert len(service.queue) == 0
    assert await repository.load_transactions() == []


async def test_view_uses_spot_rate_for_usd(service):
    view = await service.add_transaction(buy("AAPL", 10, 10, currency="USD", exchange_rate=35))

    holding = view.holdings[0]
    assert holding.market_value == pytest.approx(10 * 12 * 36)
    assert holding.total_invested == pytest.approx(3500)
    assert view.transactions[0].type is TransactionType.BUY
