"""HTTP API tests."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from invest_tracker.main import create_app
from invest_tracker.services.portfolio import PortfolioService


def _client(service: PortfolioService, settings) -> AsyncClient:
    transport = ASGITransport(app=create_app(settings, service=service))
    return AsyncClient(transport=transport, base_url="http://test")


BUY = {
    "ticker": "ptt",
    "type": "buy",
    "shares": 100,
    "price_per_share": 30,
    "commission": 5,
    "timestamp": "2024-03-01T10:00:00+07:00",
    "id": "tx-1",
}


async def test_create_transaction_returns_recomputed_portfolio(service, settings):
    async with _client(service, settings) as client:
        response = await client.post("/transactions", json=BUY)

    assert response.status_code == 201
    payload = response.json()
    holding = payload["holdings"][0]
    assert holding["ticker"] == "PTT"
    assert holding["total_invested"] == 3005
    assert holding["market_value"] == 4000
    assert payload["summary"]["total_unrealized_pl"] == 995


async def test_sell_without_shares_is_rejected(service, settings):
    async with _client(service, settings) as client:
        response = await client.post("/transactions", json={**BUY, "type": "sell", "shares": 0})

    assert response.status_code == 422


async def test_update_and_delete_transaction(service, settings):
    async with _client(service, settings) as client:
        await client.post("/transactions", json=BUY)
        updated = await client.put("/transactions/tx-1", json={"shares": 50})
        missing = await client.delete("/transactions/nope")
        deleted = await client.delete("/transactions/tx-1")

    assert updated.status_code == 200
    assert updated.json()["holdings"][0]["total_shares"] == 50
    assert missing.status_code == 404
    assert deleted.json()["holdings"] == []


async def test_list_transactions_with_filters(service, settings):
    sell = {**BUY, "id": "tx-2", "type": "sell", "shares": 40, "price_per_share": 35, "commission": 0,
            "timestamp": "2024-04-01T10:00:00+07:00"}
    async with _client(service, settings) as client:
        await client.post("/transactions", json=BUY)
        await client.post("/transactions", json=sell)
        response = await client.get("/transactions", params={"type": "sell", "profit_only": True})

    assert response.status_code == 200
    (row,) = response.json()
    assert row["id"] == "tx-2"
    assert row["realized_pl"] == pytest.approx(1400 - 40 * 30.05)


async def test_splits_endpoints(service, settings):
    split = {"ticker": "PTT", "ratio": 2, "effective_date": "2024-03-15T00:00:00Z", "id": "s1"}
    async with _client(service, settings) as client:
        await client.post("/transactions", json=BUY)
        created = await client.post("/splits", json=split)
        bad = await client.post("/splits", json={**split, "id": "s2", "ratio": 0})
        listed = await client.get("/splits")
        removed = await client.delete("/splits/s1")

    assert created.status_code == 201
    assert created.json()["holdings"][0]["total_shares"] == 200
    assert bad.status_code == 422
    assert [s["id"] for s in listed.json()] == ["s1"]
    assert removed.json()["holdings"][0]["total_shares"] == 100


async def test_manual_price_override(service, settings):
    async with _client(service, settings) as client:
        await client.post("/transactions", json={**BUY, "ticker": "NEW"})
        response = await client.put("/prices/manual/new", json={"price": 31})
        prices = await client.get("/prices/manual")

    assert response.json()["holdings"][0]["current_price"] == 31
    assert prices.json() == {"NEW": 31}


async def test_sync_and_status(service, remote, settings):
    async with _client(service, settings) as client:
        await client.post("/transactions", json=BUY)
        before = await client.get("/sync/status")
        synced = await client.post("/sync")
        after = await client.get("/sync/status")

    assert before.json()["pending_count"] == 1
    assert synced.status_code == 200
    assert after.json()["pending_count"] == 0
    assert after.json()["last_synced"] is not None
    assert "tx-1" in remote.transactions


async def test_sync_outage_maps_to_503(service, remote, settings):
    remote.available = False
    async with _client(service, settings) as client:
        await client.post("/transactions", json=BUY)
        response = await client.post("/sync")
        status = await client.get("/sync/status")

    assert response.status_code == 503
    assert status.json()["pending_count"] == 1
    assert status.json()["online"] is False


async def test_sync_without_remote_is_a_conflict(repository, price_feed, settings):
    offline = PortfolioService(repository, price_feed=price_feed, settings=settings)
    async with _client(offline, settings) as client:
        response = await client.post("/sync")

    assert response.status_code == 409


async def test_income_tax(service, settings):
    async with _client(service, settings) as client:
        response = await client.post("/tax/income", json={"net_income": 850000})

    payload = response.json()
    assert payload["total_tax"] == pytest.approx(85000)
    assert payload["marginal_rate"] == 0.2
    assert payload["effective_rate"] == pytest.approx(0.1)


async def test_categories_and_health(service, settings):
    async with _client(service, settings) as client:
        created = await client.post("/portfolio/categories", json={"name": "dividend"})
        health = await client.get("/health")

    assert "dividend" in created.json()
    assert health.json()["status"] == "ok"


async def test_hiding_a_category(service, settings):
    async with _client(service, settings) as client:
        hidden = await client.put("/portfolio/categories/long-term/hidden")
        listed = await client.get("/portfolio/categories/hidden")
        shown = await client.delete("/portfolio/categories/long-term/hidden")
        missing = await client.put("/portfolio/categories/nope/hidden")

    assert hidden.status_code == 200
    assert "long-term" not in hidden.json()
    assert listed.json() == ["long-term"]
    assert "long-term" in shown.json()
    assert missing.status_code == 404
