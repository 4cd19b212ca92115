"""Remote row store contract and its HTTP client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import quote

import httpx
from opentelemetry.propagate import inject
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from invest_ledger.models import StockSplit, Transaction

logger = logging.getLogger(__name__)

FATAL_STATUS_CODES = frozenset({401, 403, 404})


class RemoteStoreError(RuntimeError):
    """Raised when the remote row store rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FatalRemoteError(RemoteStoreError):
    """Authorization or not-found failure; retrying cannot help."""


class TransientRemoteError(RemoteStoreError):
    """Rate limiting, server or connectivity failure that outlived its retries."""


def is_transient_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


class RemoteRowStore(Protocol):
    """Id-keyed row operations the change queue replays against."""

    async def fetch_all(self) -> list[Transaction]:
        ...

    async def append(self, transaction: Transaction) -> None:
        ...

    async def update_by_id(self, transaction_id: str, transaction: Transaction) -> None:
        ...

    async def delete_by_id(self, transaction_id: str) -> None:
        ...

    async def fetch_splits(self) -> list[StockSplit]:
        ...

    async def append_split(self, split: StockSplit) -> None:
        ...

    async def delete_split(self, split_id: str) -> None:
        ...


class HttpRowStore:
    """JSON-over-HTTP row store with bounded exponential backoff.

    Deletes of rows the store no longer has succeed quietly, so replaying a
    change that already landed never holds the queue.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 15.0,
        max_retries: int = 5,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._client = client
        self._sleep = sleep

    async def _send(self, method: str, url: str, json: Any | None, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, json=json, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, json=json, headers=headers)

    async def _attempt(self, method: str, path: str, json: Any | None, headers: dict[str, str]) -> Any:
        try:
            response = await self._send(method, f"{self._base_url}{path}", json, headers)
        except httpx.TransportError as exc:
            raise TransientRemoteError(f"{method} {path} failed: {exc}") from exc
        status_code = response.status_code
        if status_code < 400:
            if response.content and response.headers.get("content-type", "").startswith("application/json"):
                return response.json()
            return None
        message = f"{method} {path} returned {status_code}"
        if status_code in FATAL_STATUS_CODES:
            logger.warning("Remote store rejected request: %s", message)
            raise FatalRemoteError(message, status_code)
        if not is_transient_status(status_code):
            logger.warning("Remote store request failed: %s", message)
            raise RemoteStoreError(message, status_code)
        raise TransientRemoteError(message, status_code)

    async def _request(self, method: str, path: str, json: Any | None = None) -> Any:
        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        # Inject current trace context so remote spans link to the sync
        try:
            inject(headers)
        except Exception:
            # Best-effort; keep request functional even if tracing is unavailable
            pass

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientRemoteError),
            wait=wait_exponential(multiplier=self._backoff_base, max=self._backoff_max),
            stop=stop_after_attempt(self._max_retries + 1),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.INFO),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._attempt(method, path, json, headers)

    async def fetch_all(self) -> list[Transaction]:
        rows = await self._request("GET", "/transactions") or []
        return [Transaction.from_dict(row) for row in rows]

    async def append(self, transaction: Transaction) -> None:
        await self._request("POST", "/transactions", json=transaction.to_dict())

    async def update_by_id(self, transaction_id: str, transaction: Transaction) -> None:
        """Overwrite a row; a row the store no longer has is appended instead."""

        try:
            await self._request("PUT", f"/transactions/{quote(transaction_id, safe='')}", json=transaction.to_dict())
        except FatalRemoteError as exc:
            if exc.status_code != 404:
                raise
            logger.info("Transaction %s missing remotely, appending it", transaction_id)
            await self.append(transaction)

    async def delete_by_id(self, transaction_id: str) -> None:
        try:
            await self._request("DELETE", f"/transactions/{quote(transaction_id, safe='')}")
        except FatalRemoteError as exc:
            if exc.status_code != 404:
                raise
            logger.info("Transaction %s already absent remotely", transaction_id)

    async def fetch_splits(self) -> list[StockSplit]:
        rows = await self._request("GET", "/splits") or []
        return [StockSplit.from_dict(row) for row in rows]

    async def append_split(self, split: StockSplit) -> None:
        await self._request("POST", "/splits", json=split.to_dict())

    async def delete_split(self, split_id: str) -> None:
        try:
            await self._request("DELETE", f"/splits/{quote(split_id, safe='')}")
        except FatalRemoteError as exc:
            if exc.status_code != 404:
                raise
            logger.info("Split %s already absent remotely", split_id)


class InMemoryRowStore:
    """Row store kept in process memory, for tests and offline demos.

    Writes are keyed by id: appending an existing id overwrites it, updating a
    missing id appends it and deleting a missing id is a no-op. Setting
    ``available`` to False makes every call fail as a transient outage.
    """

    def __init__(
        self,
        transactions: list[Transaction] | None = None,
        splits: list[StockSplit] | None = None,
    ):
        self.transactions: dict[str, Transaction] = {tx.id: tx for tx in transactions or []}
        self.splits: dict[str, StockSplit] = {split.id: split for split in splits or []}
        self.available = True
        self.calls: list[tuple[str, str]] = []

    def _check(self, operation: str, record_id: str = "") -> None:
        if not self.available:
            raise TransientRemoteError(f"{operation} failed: remote store unavailable", 503)
        self.calls.append((operation, record_id))

    async def fetch_all(self) -> list[Transaction]:
        self._check("fetch_all")
        return list(self.transactions.values())

    async def append(self, transaction: Transaction) -> None:
        self._check("append", transaction.id)
        self.transactions[transaction.id] = transaction

    async def update_by_id(self, transaction_id: str, transaction: Transaction) -> None:
        self._check("update", transaction_id)
        self.transactions[transaction_id] = transaction

    async def delete_by_id(self, transaction_id: str) -> None:
        self._check("delete", transaction_id)
        self.transactions.pop(transaction_id, None)

    async def fetch_splits(self) -> list[StockSplit]:
        self._check("fetch_splits")
        return list(self.splits.values())

    async def append_split(self, split: StockSplit) -> None:
        self._check("append_split", split.id)
        self.splits[split.id] = split

    async def delete_split(self, split_id: str) -> None:
        self._check("delete_split", split_id)
        self.splits.pop(split_id, None)


__all__ = [
    "FATAL_STATUS_CODES",
    "FatalRemoteError",
    "HttpRowStore",
    "InMemoryRowStore",
    "RemoteRowStore",
    "RemoteStoreError",
    "TransientRemoteError",
    "is_transient_status",
]
