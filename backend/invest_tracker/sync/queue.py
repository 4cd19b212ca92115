"""Offline change queue replayed against the remote row store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from opentelemetry import trace

from invest_ledger.models import StockSplit, Transaction, as_utc

from ..storage.local import LocalRepository
from .cache import SnapshotCache
from .remote import RemoteRowStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ChangeType(str, Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class ChangeKind(str, Enum):
    TRANSACTION = "transaction"
    SPLIT = "split"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingChange:
    """A local edit not yet confirmed by the remote store."""

    id: str
    type: ChangeType
    transaction: Optional[Transaction] = None
    timestamp: datetime = field(default_factory=_utcnow)
    kind: ChangeKind = ChangeKind.TRANSACTION
    split: Optional[StockSplit] = None

    @property
    def key(self) -> tuple[ChangeKind, str]:
        return (self.kind, self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "kind": self.kind.value,
            "timestamp": as_utc(self.timestamp).isoformat(),
            "transaction": self.transaction.to_dict() if self.transaction else None,
            "split": self.split.to_dict() if self.split else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PendingChange":
        transaction = data.get("transaction")
        split = data.get("split")
        return cls(
            id=str(data["id"]),
            type=ChangeType(data["type"]),
            kind=ChangeKind(data.get("kind") or ChangeKind.TRANSACTION.value),
            timestamp=as_utc(datetime.fromisoformat(data["timestamp"])),
            transaction=Transaction.from_dict(transaction) if transaction else None,
            split=StockSplit.from_dict(split) if split else None,
        )


def merge_change(
    pending: Iterable[PendingChange],
    change: PendingChange,
    in_flight: Sequence[PendingChange] = (),
) -> list[PendingChange]:
    """Fold ``change`` into ``pending`` following the collapse rules.

    * no entry for the record: append
    * pending add, then delete: drop the entry, the record never left the client
    * pending add, then update: stay an add carrying the new payload
    * anything else: the new entry replaces the old one in place

    Entries in ``in_flight`` are being replayed and are never collapsed into;
    a change for the same record is queued behind them instead. When a record
    has several entries the newest one absorbs the change.
    """

    merged = list(pending)
    for index in range(len(merged) - 1, -1, -1):
        existing = merged[index]
        if existing.key != change.key:
            continue
        if any(existing is sent for sent in in_flight):
            break
        if existing.type is ChangeType.ADD and change.type is ChangeType.DELETE:
            del merged[index]
        elif existing.type is ChangeType.ADD and change.type is ChangeType.UPDATE:
            merged[index] = replace(existing, transaction=change.transaction, split=change.split)
        else:
            merged[index] = change
        return merged
    merged.append(change)
    return merged


async def _replay(remote: RemoteRowStore, change: PendingChange) -> None:
    if change.kind is ChangeKind.SPLIT:
        if change.type is ChangeType.DELETE:
            await remote.delete_split(change.id)
        elif change.split is not None:
            await remote.append_split(change.split)
        return
    if change.type is ChangeType.ADD:
        if change.transaction is not None:
            await remote.append(change.transaction)
    elif change.type is ChangeType.UPDATE:
        if change.transaction is not None:
            await remote.update_by_id(change.id, change.transaction)
    else:
        await remote.delete_by_id(change.id)


class ChangeQueue:
    """Durable queue of pending changes with exclusive draining."""

    def __init__(self, repository: LocalRepository, cache: SnapshotCache | None = None):
        self._repository = repository
        self._cache = cache
        self._pending: list[PendingChange] = []
        self._in_flight: list[PendingChange] = []
        self._drain_lock = asyncio.Lock()
        self._persist_lock = asyncio.Lock()

    async def load(self) -> None:
        rows = await self._repository.load_pending_changes()
        changes: list[PendingChange] = []
        for row in rows:
            try:
                changes.append(PendingChange.from_dict(row))
            except (KeyError, TypeError, ValueError):
                logger.warning("Dropping unreadable pending change %r", row)
        self._pending = changes

    @property
    def pending(self) -> tuple[PendingChange, ...]:
        return tuple(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._drain_lock.locked()

    async def _persist(self) -> None:
        async with self._persist_lock:
            await self._repository.save_pending_changes([change.to_dict() for change in self._pending])

    async def enqueue(self, change: PendingChange) -> None:
        self._pending = merge_change(self._pending, change, self._in_flight)
        await self._persist()

    async def clear(self) -> None:
        self._pending = []
        await self._persist()

    async def drain(self, remote: RemoteRowStore) -> int:
        """Replay every pending change in enqueue order.

        Only one drain runs at a time; a second caller waits for the first and
        then drains whatever is left. A failure leaves the queue untouched and
        propagates. Changes enqueued while the drain is in flight stay queued.
        Returns the number of changes replayed.
        """

        async with self._drain_lock:
            batch = list(self._pending)
            if not batch:
                return 0
            self._in_flight = batch
            with tracer.start_as_current_span("change_queue.drain") as span:
                span.set_attribute("change_queue.size", len(batch))
                logger.info("Draining %d pending changes", len(batch))
                try:
                    for change in batch:
                        await _replay(remote, change)
                except Exception:
                    logger.warning("Sync failed; %d changes remain queued", len(self._pending))
                    raise
                finally:
                    self._in_flight = []
                self._pending = [c for c in self._pending if not any(c is sent for sent in batch)]
                await self._persist()
                await self._repository.set_last_synced(_utcnow())
                if self._cache is not None:
                    self._cache.invalidate()
            logger.info("Synced %d changes, %d left pending", len(batch), len(self._pending))
            return len(batch)


__all__ = ["ChangeKind", "ChangeQueue", "ChangeType", "PendingChange", "merge_change"]
