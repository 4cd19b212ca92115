"""Wiring of settings into a ready-to-use portfolio service."""

from __future__ import annotations

import importlib
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from ..config import AppSettings
from ..db.session import build_engine, build_session_factory, init_database
from ..storage.local import LocalRepository, SqlLocalStore
from ..sync.remote import HttpRowStore
from .portfolio import PortfolioService
from .prices import CachingPriceFeed, PriceFeed

logger = logging.getLogger(__name__)


def build_remote_store(settings: AppSettings) -> HttpRowStore | None:
    if not settings.remote_store_url:
        logger.info("No remote store configured; running offline")
        return None
    return HttpRowStore(
        settings.remote_store_url,
        token=settings.remote_store_token,
        timeout=settings.remote_timeout_seconds,
        max_retries=settings.remote_max_retries,
        backoff_base=settings.remote_backoff_base_seconds,
        backoff_max=settings.remote_backoff_max_seconds,
    )


def load_price_feed(settings: AppSettings) -> PriceFeed | None:
    """Resolve ``settings.price_feed_factory`` into a cached price feed."""

    if not settings.price_feed_factory:
        return None
    module_name, _, attribute = settings.price_feed_factory.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"price_feed_factory must look like 'module:callable', got {settings.price_feed_factory!r}")
    factory = getattr(importlib.import_module(module_name), attribute)
    logger.info("Using price feed from %s", settings.price_feed_factory)
    return CachingPriceFeed(
        factory(settings),
        ttl_seconds=settings.price_cache_ttl_seconds,
        fallback_rate=settings.default_exchange_rate,
    )


async def open_portfolio_service(
    settings: AppSettings,
    *,
    price_feed: PriceFeed | None = None,
    start: bool = True,
) -> tuple[AsyncEngine, PortfolioService]:
    """Create the local database, the repository and a loaded service.

    The caller owns the returned engine and should dispose it on shutdown.
    """

    engine = build_engine(settings.local_database_url)
    await init_database(engine)
    repository = LocalRepository(SqlLocalStore(build_session_factory(engine)))
    service = PortfolioService(
        repository,
        remote=build_remote_store(settings),
        price_feed=price_feed or load_price_feed(settings),
        settings=settings,
    )
    if start:
        await service.start()
    else:
        await service.load()
    return engine, service


__all__ = ["build_remote_store", "load_price_feed", "open_portfolio_service"]
