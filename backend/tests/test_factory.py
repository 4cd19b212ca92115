"""Service wiring from settings."""

from __future__ import annotations

import pytest

from invest_tracker.config import AppSettings
from invest_tracker.services.factory import build_remote_store, load_price_feed, open_portfolio_service
from invest_tracker.services.prices import USD_THB, CachingPriceFeed, StaticPriceFeed
from invest_tracker.sync.remote import HttpRowStore

from factories import buy


def quoted_feed(settings: AppSettings) -> StaticPriceFeed:
    return StaticPriceFeed({"PTT": 41.0}, spot_rates={USD_THB: 35.0})


def _settings(tmp_path, **overrides) -> AppSettings:
    return AppSettings(
        _env_file=None,
        local_database_url=f"sqlite+aiosqlite:///{tmp_path / 'state.db'}",
        **overrides,
    )


def test_remote_store_only_when_configured(tmp_path):
    assert build_remote_store(_settings(tmp_path)) is None
    assert isinstance(build_remote_store(_settings(tmp_path, remote_store_url="https://rows.example")), HttpRowStore)


def test_price_feed_hook_is_optional(tmp_path):
    assert load_price_feed(_settings(tmp_path)) is None


def test_price_feed_hook_rejects_malformed_path(tmp_path):
    with pytest.raises(ValueError):
        load_price_feed(_settings(tmp_path, price_feed_factory="test_factory.quoted_feed"))


async def test_configured_price_feed_values_holdings(tmp_path):
    settings = _settings(tmp_path, price_feed_factory="test_factory:quoted_feed")
    assert isinstance(load_price_feed(settings), CachingPriceFeed)

    engine, service = await open_portfolio_service(settings)
    try:
        view = await service.add_transaction(buy("PTT", 10, 30))
    finally:
        await engine.dispose()

    (holding,) = view.holdings
    assert holding.has_price_data
    assert holding.current_price == 41.0
