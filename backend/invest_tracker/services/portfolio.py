"""Domain services backing the portfolio API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Iterable

from opentelemetry import trace

from invest_ledger.ledger import deduplicate_transactions
from invest_ledger.models import (
    DEFAULT_CATEGORIES,
    StockSplit,
    Transaction,
    TransactionType,
)
from invest_ledger.pipeline import PortfolioView, build_portfolio

from ..config import AppSettings, get_settings
from ..storage.local import LocalRepository
from ..sync.cache import SnapshotCache
from ..sync.queue import ChangeKind, ChangeQueue, ChangeType, PendingChange
from ..sync.remote import RemoteRowStore, RemoteStoreError, TransientRemoteError
from .prices import CachingPriceFeed, PriceFeed, StaticPriceFeed

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_EDITABLE_FIELDS = {f.name for f in fields(Transaction)} - {"id", "realized_pl", "realized_pl_percent"}
_REQUIRED_FIELDS = {
    "ticker",
    "type",
    "shares",
    "price_per_share",
    "total_value",
    "commission",
    "timestamp",
    "category",
    "currency",
}
_TRANSACTIONS_SCOPE = "transactions"
_SPLITS_SCOPE = "splits"


@dataclass(frozen=True)
class SyncStatus:
    pending_count: int
    last_synced: datetime | None
    online: bool
    is_syncing: bool
    last_error: str | None = None


class PortfolioService:
    """Owns the local ledger, recomputes the view and queues every edit.

    Local state is authoritative until a drain succeeds; the view is rebuilt
    from scratch after each mutation.
    """

    def __init__(
        self,
        repository: LocalRepository,
        *,
        remote: RemoteRowStore | None = None,
        price_feed: PriceFeed | None = None,
        settings: AppSettings | None = None,
        cache: SnapshotCache | None = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.remote = remote
        self.price_feed = price_feed or CachingPriceFeed(
            StaticPriceFeed(),
            ttl_seconds=self.settings.price_cache_ttl_seconds,
            fallback_rate=self.settings.default_exchange_rate,
        )
        self.cache = cache or SnapshotCache(self.settings.remote_cache_ttl_seconds)
        self.queue = ChangeQueue(repository, self.cache)
        self.online = remote is not None
        self.last_error: str | None = None
        self._transactions: list[Transaction] = []
        self._splits: list[StockSplit] = []
        self._manual_prices: dict[str, float] = {}
        self._custom_categories: list[str] = []
        self._hidden_categories: list[str] = []

    # State

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def splits(self) -> list[StockSplit]:
        return list(self._splits)

    @property
    def manual_prices(self) -> dict[str, float]:
        return dict(self._manual_prices)

    @property
    def all_categories(self) -> list[str]:
        return list(DEFAULT_CATEGORIES) + [c for c in self._custom_categories if c not in DEFAULT_CATEGORIES]

    @property
    def categories(self) -> list[str]:
        """Categories offered for new entries; hidden ones are left out."""

        return [c for c in self.all_categories if c not in self._hidden_categories]

    @property
    def hidden_categories(self) -> list[str]:
        return list(self._hidden_categories)

    async def load(self) -> None:
        transactions = await self.repository.load_transactions()
        self._transactions, _ = deduplicate_transactions(transactions)
        self._splits = await self.repository.load_splits()
        self._manual_prices = await self.repository.load_manual_prices()
        self._custom_categories = await self.repository.load_custom_categories()
        self._hidden_categories = await self.repository.load_hidden_categories()
        await self.queue.load()
        logger.info(
            "Loaded %d transactions, %d splits, %d pending changes",
            len(self._transactions),
            len(self._splits),
            len(self.queue),
        )

    async def start(self) -> None:
        """Load local state and push anything left from the previous session."""

        await self.load()
        await self._drain_in_background()

    # Valuation

    def compute(self, current_prices: dict[str, float], exchange_rate: float) -> PortfolioView:
        with tracer.start_as_current_span("portfolio.recompute") as span:
            span.set_attribute("portfolio.transactions", len(self._transactions))
            return build_portfolio(
                self._transactions,
                self._splits,
                current_prices,
                exchange_rate,
                self._manual_prices,
                dust_value=self.settings.dust_value_threshold,
            )

    async def view(self) -> PortfolioView:
        tickers = sorted({tx.ticker for tx in self._transactions if tx.type is not TransactionType.DIVIDEND})
        prices = await self.price_feed.get_current_prices(tickers) if tickers else {}
        rate = await self.price_feed.get_spot_rate()
        if not rate or rate <= 0:
            rate = self.settings.default_exchange_rate
        return self.compute(prices, rate)

    # Transaction mutations

    def get_transaction(self, transaction_id: str) -> Transaction:
        for tx in self._transactions:
            if tx.id == transaction_id:
                return tx
        raise LookupError(f"Transaction {transaction_id} not found")

    async def add_transaction(self, transaction: Transaction) -> PortfolioView:
        if any(tx.id == transaction.id for tx in self._transactions):
            raise ValueError(f"Transaction {transaction.id} already exists")
        self._transactions.append(transaction)
        await self.repository.save_transactions(self._transactions)
        await self.queue.enqueue(
            PendingChange(id=transaction.id, type=ChangeType.ADD, transaction=transaction)
        )
        return await self.view()

    async def update_transaction(self, transaction_id: str, **changes: Any) -> PortfolioView:
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        cleared = {name for name in _REQUIRED_FIELDS & set(changes) if changes[name] is None}
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(sorted(cleared))}")
        existing = self.get_transaction(transaction_id)
        updated = replace(existing, **changes)
        if "total_value" not in changes and {"shares", "price_per_share", "type"} & set(changes):
            if updated.type is TransactionType.DIVIDEND:
                updated = replace(updated, shares=0.0, total_value=updated.price_per_share)
            else:
                updated = replace(updated, total_value=updated.shares * updated.price_per_share)
        self._transactions = [updated if tx.id == transaction_id else tx for tx in self._transactions]
        await self.repository.save_transactions(self._transactions)
        await self.queue.enqueue(
            PendingChange(id=transaction_id, type=ChangeType.UPDATE, transaction=updated)
        )
        return await self.view()

    async def set_manual_realized_pl(self, transaction_id: str, value: float | None) -> PortfolioView:
        tx = self.get_transaction(transaction_id)
        if tx.type is not TransactionType.SELL:
            raise ValueError("Realized P/L can only be overridden on sell transactions")
        return await self.update_transaction(transaction_id, manual_realized_pl=value)

    async def delete_transaction(self, transaction_id: str) -> PortfolioView:
        self.get_transaction(transaction_id)
        self._transactions = [tx for tx in self._transactions if tx.id != transaction_id]
        await self.repository.save_transactions(self._transactions)
        await self.queue.enqueue(PendingChange(id=transaction_id, type=ChangeType.DELETE))
        return await self.view()

    async def import_transactions(self, transactions: Iterable[Transaction]) -> int:
        """Append a bulk import; ids already on file are skipped."""

        known = {tx.id for tx in self._transactions}
        incoming, _ = deduplicate_transactions(transactions)
        added = [tx for tx in incoming if tx.id not in known]
        if not added:
            return 0
        self._transactions.extend(added)
        await self.repository.save_transactions(self._transactions)
        for tx in added:
            await self.queue.enqueue(PendingChange(id=tx.id, type=ChangeType.ADD, transaction=tx))
        logger.info("Imported %d transactions (%d skipped)", len(added), len(incoming) - len(added))
        return len(added)

    # Splits, prices and categories

    async def add_split(self, split: StockSplit) -> PortfolioView:
        if split.ratio <= 0:
            raise ValueError("Split ratio must be positive")
        if any(s.id == split.id for s in self._splits):
            raise ValueError(f"Split {split.id} already exists")
        self._splits.append(split)
        await self.repository.save_splits(self._splits)
        await self.queue.enqueue(
            PendingChange(id=split.id, type=ChangeType.ADD, kind=ChangeKind.SPLIT, split=split)
        )
        return await self.view()

    async def remove_split(self, split_id: str) -> PortfolioView:
        if not any(s.id == split_id for s in self._splits):
            raise LookupError(f"Split {split_id} not found")
        self._splits = [s for s in self._splits if s.id != split_id]
        await self.repository.save_splits(self._splits)
        await self.queue.enqueue(PendingChange(id=split_id, type=ChangeType.DELETE, kind=ChangeKind.SPLIT))
        return await self.view()

    async def set_manual_price(self, ticker: str, price: float | None) -> PortfolioView:
        ticker = ticker.strip().upper()
        if price is None or price <= 0:
            self._manual_prices.pop(ticker, None)
        else:
            self._manual_prices[ticker] = price
        await self.repository.save_manual_prices(self._manual_prices)
        return await self.view()

    async def add_category(self, name: str) -> list[str]:
        name = name.strip()
        if not name:
            raise ValueError("Category name must not be empty")
        if name not in self.all_categories:
            self._custom_categories.append(name)
            await self.repository.save_custom_categories(self._custom_categories)
        return self.categories

    async def set_category_hidden(self, name: str, hidden: bool) -> list[str]:
        """Hide a category from the offered list, or show it again.

        Existing transactions keep their category either way.
        """

        name = name.strip()
        if name not in self.all_categories:
            raise LookupError(f"Category {name} not found")
        if hidden and name not in self._hidden_categories:
            self._hidden_categories.append(name)
        elif not hidden and name in self._hidden_categories:
            self._hidden_categories.remove(name)
        else:
            return self.categories
        await self.repository.save_hidden_categories(self._hidden_categories)
        return self.categories

    async def reset(self) -> PortfolioView:
        """Delete every transaction and split, locally and (once synced) remotely."""

        for tx in self._transactions:
            await self.queue.enqueue(PendingChange(id=tx.id, type=ChangeType.DELETE))
        for split in self._splits:
            await self.queue.enqueue(PendingChange(id=split.id, type=ChangeType.DELETE, kind=ChangeKind.SPLIT))
        self._transactions = []
        self._splits = []
        self._manual_prices = {}
        self._custom_categories = []
        self._hidden_categories = []
        await self.repository.save_transactions([])
        await self.repository.save_splits([])
        await self.repository.save_manual_prices({})
        await self.repository.save_custom_categories([])
        await self.repository.save_hidden_categories([])
        return await self.view()

    async def clear_local_data(self) -> None:
        """Forget everything stored on this device, including unsynced changes."""

        await self.repository.reset_local_data()
        await self.queue.clear()
        self._transactions = []
        self._splits = []
        self._manual_prices = {}
        self._custom_categories = []
        self._hidden_categories = []
        logger.info("Local data cleared")

    # Sync

    def _require_remote(self) -> RemoteRowStore:
        if self.remote is None:
            raise RuntimeError("No remote store configured")
        return self.remote

    async def _drain_in_background(self) -> int:
        """Drain for the session-start and connectivity triggers.

        Failures are recorded in the sync status instead of raised so the
        local ledger keeps being served; explicit ``sync`` still propagates.
        """

        if self.remote is None:
            return 0
        try:
            replayed = await self.queue.drain(self.remote)
        except RemoteStoreError as exc:
            self.online = not isinstance(exc, TransientRemoteError)
            self.last_error = str(exc)
            if self.online:
                logger.error("Background sync rejected by remote store: %s", exc)
            else:
                logger.warning("Background sync postponed: %s", exc)
            return 0
        self.online = True
        self.last_error = None
        return replayed

    async def on_connectivity_restored(self) -> int:
        """Drain trigger for when the network comes back."""

        return await self._drain_in_background()

    async def fetch_remote_transactions(self) -> list[Transaction]:
        remote = self._require_remote()
        cached = self.cache.get(_TRANSACTIONS_SCOPE)
        if cached is None:
            cached = await remote.fetch_all()
            self.cache.set(_TRANSACTIONS_SCOPE, cached)
        return list(cached)

    async def fetch_remote_splits(self) -> list[StockSplit]:
        remote = self._require_remote()
        cached = self.cache.get(_SPLITS_SCOPE)
        if cached is None:
            cached = await remote.fetch_splits()
            self.cache.set(_SPLITS_SCOPE, cached)
        return list(cached)

    async def sync(self) -> PortfolioView:
        """Push pending changes, then adopt the remote ledger as local state.

        Changes queued after the drain started are re-applied on top of the
        remote snapshot so they are not lost.
        """

        remote = self._require_remote()
        try:
            await self.queue.drain(remote)
            remote_transactions = await self.fetch_remote_transactions()
            remote_splits = await self.fetch_remote_splits()
        except RemoteStoreError as exc:
            self.online = not isinstance(exc, TransientRemoteError)
            self.last_error = str(exc)
            raise
        self.online = True
        self.last_error = None

        transactions, duplicates = deduplicate_transactions(remote_transactions)
        if duplicates:
            logger.warning("Remote store holds %d duplicate transaction rows", len(duplicates))
        self._transactions = self._overlay_pending(transactions)
        self._splits = self._overlay_pending_splits(remote_splits)
        await self.repository.save_transactions(self._transactions)
        await self.repository.save_splits(self._splits)
        return await self.view()

    def _overlay_pending(self, transactions: list[Transaction]) -> list[Transaction]:
        by_id = {tx.id: tx for tx in transactions}
        for change in self.queue.pending:
            if change.kind is not ChangeKind.TRANSACTION:
                continue
            if change.type is ChangeType.DELETE:
                by_id.pop(change.id, None)
            elif change.transaction is not None:
                by_id[change.id] = change.transaction
        return list(by_id.values())

    def _overlay_pending_splits(self, splits: list[StockSplit]) -> list[StockSplit]:
        by_id = {split.id: split for split in splits}
        for change in self.queue.pending:
            if change.kind is not ChangeKind.SPLIT:
                continue
            if change.type is ChangeType.DELETE:
                by_id.pop(change.id, None)
            elif change.split is not None:
                by_id[change.id] = change.split
        return list(by_id.values())

    async def sync_status(self) -> SyncStatus:
        return SyncStatus(
            pending_count=len(self.queue),
            last_synced=await self.repository.get_last_synced(),
            online=self.online,
            is_syncing=self.queue.is_draining,
            last_error=self.last_error,
        )


__all__ = ["PortfolioService", "SyncStatus"]
