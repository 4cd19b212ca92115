"""Durable key-value storage for transactions, splits and the change queue."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from invest_ledger.models import StockSplit, Transaction, as_utc

from ..models import LocalStateEntry

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "invest_tracker_transactions"
PENDING_CHANGES_KEY = "invest_tracker_pending_changes"
LAST_SYNCED_KEY = "invest_tracker_last_synced"
STOCK_SPLITS_KEY = "invest_tracker_stock_splits"
MANUAL_PRICES_KEY = "invest_tracker_manual_prices"
CUSTOM_CATEGORIES_KEY = "invest_tracker_custom_categories"
HIDDEN_CATEGORIES_KEY = "invest_tracker_hidden_categories"

ALL_KEYS = (
    TRANSACTIONS_KEY,
    PENDING_CHANGES_KEY,
    LAST_SYNCED_KEY,
    STOCK_SPLITS_KEY,
    MANUAL_PRICES_KEY,
    CUSTOM_CATEGORIES_KEY,
    HIDDEN_CATEGORIES_KEY,
)


class LocalStore(Protocol):
    """Get/set/remove of JSON-serialisable values by key."""

    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class InMemoryLocalStore:
    """Process-local store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqlLocalStore:
    """Store backed by the ``local_state`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> Any | None:
        async with self._session_factory() as session:
            entry = await session.get(LocalStateEntry, key)
            if entry is None:
                return None
            try:
                return json.loads(entry.value)
            except json.JSONDecodeError:
                logger.error("Discarding unreadable local state for key %s", key)
                return None

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        async with self._session_factory() as session:
            entry = await session.get(LocalStateEntry, key)
            if entry is None:
                session.add(LocalStateEntry(key=key, value=payload))
            else:
                entry.value = payload
            await session.commit()

    async def remove(self, key: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(LocalStateEntry).where(LocalStateEntry.key == key))
            await session.commit()

    async def keys(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(select(LocalStateEntry.key).order_by(LocalStateEntry.key))
            return list(result.scalars().all())


class LocalRepository:
    """Typed access to the well-known local state keys."""

    def __init__(self, store: LocalStore):
        self.store = store

    async def load_transactions(self) -> list[Transaction]:
        rows = await self.store.get(TRANSACTIONS_KEY) or []
        return [Transaction.from_dict(row) for row in rows]

    async def save_transactions(self, transactions: list[Transaction]) -> None:
        await self.store.set(TRANSACTIONS_KEY, [tx.to_dict() for tx in transactions])

    async def load_splits(self) -> list[StockSplit]:
        rows = await self.store.get(STOCK_SPLITS_KEY) or []
        return [StockSplit.from_dict(row) for row in rows]

    async def save_splits(self, splits: list[StockSplit]) -> None:
        await self.store.set(STOCK_SPLITS_KEY, [split.to_dict() for split in splits])

    async def load_pending_changes(self) -> list[dict[str, Any]]:
        return list(await self.store.get(PENDING_CHANGES_KEY) or [])

    async def save_pending_changes(self, rows: list[dict[str, Any]]) -> None:
        if rows:
            await self.store.set(PENDING_CHANGES_KEY, rows)
        else:
            await self.store.remove(PENDING_CHANGES_KEY)

    async def get_last_synced(self) -> datetime | None:
        raw = await self.store.get(LAST_SYNCED_KEY)
        if not raw:
            return None
        try:
            return as_utc(datetime.fromisoformat(raw))
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed last-synced value %r", raw)
            return None

    async def set_last_synced(self, when: datetime) -> None:
        await self.store.set(LAST_SYNCED_KEY, as_utc(when).isoformat())

    async def load_manual_prices(self) -> dict[str, float]:
        raw = await self.store.get(MANUAL_PRICES_KEY) or {}
        prices: dict[str, float] = {}
        for ticker, value in raw.items():
            try:
                prices[ticker.upper()] = float(value)
            except (TypeError, ValueError):
                logger.warning("Dropping malformed manual price %r for %s", value, ticker)
        return prices

    async def save_manual_prices(self, prices: dict[str, float]) -> None:
        await self.store.set(MANUAL_PRICES_KEY, prices)

    async def load_custom_categories(self) -> list[str]:
        return list(await self.store.get(CUSTOM_CATEGORIES_KEY) or [])

    async def save_custom_categories(self, categories: list[str]) -> None:
        await self.store.set(CUSTOM_CATEGORIES_KEY, categories)

    async def load_hidden_categories(self) -> list[str]:
        return list(await self.store.get(HIDDEN_CATEGORIES_KEY) or [])

    async def save_hidden_categories(self, categories: list[str]) -> None:
        await self.store.set(HIDDEN_CATEGORIES_KEY, categories)

    async def reset_local_data(self) -> None:
        for key in ALL_KEYS:
            await self.store.remove(key)


__all__ = [
    "ALL_KEYS",
    "InMemoryLocalStore",
    "LocalRepository",
    "LocalStore",
    "SqlLocalStore",
]
