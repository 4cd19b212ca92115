"""Offline change queue and remote store client."""

from .cache import SnapshotCache
from .queue import ChangeKind, ChangeQueue, ChangeType, PendingChange, merge_change
from .remote import (
    FatalRemoteError,
    HttpRowStore,
    InMemoryRowStore,
    RemoteRowStore,
    RemoteStoreError,
    TransientRemoteError,
)

__all__ = [
    "ChangeKind",
    "ChangeQueue",
    "ChangeType",
    "FatalRemoteError",
    "HttpRowStore",
    "InMemoryRowStore",
    "PendingChange",
    "RemoteRowStore",
    "RemoteStoreError",
    "SnapshotCache",
    "TransientRemoteError",
    "merge_change",
]
