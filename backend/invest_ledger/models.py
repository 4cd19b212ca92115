"""Domain models used by the ledger and valuation engine."""
from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("securities", "long-term", "speculation")
DEFAULT_CATEGORY = "long-term"


class TransactionType(str, Enum):
    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"


class Currency(str, Enum):
    THB = "THB"
    USD = "USD"


def as_utc(value: datetime | date) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def _coerce_float(raw: Any, name: str, record_id: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Coercing malformed %s=%r to 0 on record %s", name, raw, record_id)
        return 0.0
    if math.isnan(value) or math.isinf(value):
        logger.warning("Coercing non-finite %s=%r to 0 on record %s", name, raw, record_id)
        return 0.0
    return value


def _coerce_optional_float(raw: Any, name: str, record_id: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Dropping malformed %s=%r on record %s", name, raw, record_id)
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _coerce_timestamp(raw: Any, name: str, record_id: str) -> datetime:
    if isinstance(raw, (datetime, date)):
        return as_utc(raw)
    if isinstance(raw, str) and raw:
        try:
            return as_utc(datetime.fromisoformat(raw))
        except ValueError:
            pass
    logger.warning("Malformed %s=%r on record %s, using current time", name, raw, record_id)
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return as_utc(value).isoformat()


@dataclass(frozen=True)
class Transaction:
    """One trading event.

    ``price_per_share`` and ``total_value`` are overloaded for dividends: both
    carry the gross cash amount received and ``shares`` is zero.
    """

    id: str
    ticker: str
    type: TransactionType
    shares: float
    price_per_share: float
    total_value: float
    commission: float
    timestamp: datetime
    category: str = DEFAULT_CATEGORY
    related_buy_id: Optional[str] = None
    realized_pl: Optional[float] = None
    realized_pl_percent: Optional[float] = None
    dividend_per_share: Optional[float] = None
    withholding_tax: Optional[float] = None
    currency: Currency = Currency.THB
    exchange_rate: Optional[float] = None
    manual_realized_pl: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticker", self.ticker.strip().upper())
        object.__setattr__(self, "type", TransactionType(self.type))
        object.__setattr__(self, "currency", Currency(self.currency))
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    @classmethod
    def create(
        cls,
        ticker: str,
        type: TransactionType | str,
        shares: float,
        price_per_share: float,
        timestamp: datetime,
        *,
        commission: float = 0.0,
        category: str = DEFAULT_CATEGORY,
        currency: Currency | str = Currency.THB,
        exchange_rate: float | None = None,
        withholding_tax: float | None = None,
        dividend_per_share: float | None = None,
        related_buy_id: str | None = None,
        manual_realized_pl: float | None = None,
        id: str | None = None,
    ) -> "Transaction":
        """Build a new record, deriving ``total_value`` from the type."""

        tx_type = TransactionType(type)
        if tx_type is TransactionType.DIVIDEND:
            shares = 0.0
            total_value = price_per_share
        else:
            total_value = shares * price_per_share
        return cls(
            id=id or new_id(),
            ticker=ticker,
            type=tx_type,
            shares=shares,
            price_per_share=price_per_share,
            total_value=total_value,
            commission=commission,
            timestamp=timestamp,
            category=category or DEFAULT_CATEGORY,
            related_buy_id=related_buy_id,
            dividend_per_share=dividend_per_share,
            withholding_tax=withholding_tax if tx_type is TransactionType.DIVIDEND else None,
            currency=Currency(currency),
            exchange_rate=exchange_rate,
            manual_realized_pl=manual_realized_pl if tx_type is TransactionType.SELL else None,
        )

    @property
    def is_usd(self) -> bool:
        return self.currency is Currency.USD

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ticker": self.ticker,
            "type": self.type.value,
            "shares": self.shares,
            "price_per_share": self.price_per_share,
            "total_value": self.total_value,
            "commission": self.commission,
            "timestamp": _format_timestamp(self.timestamp),
            "category": self.category,
            "related_buy_id": self.related_buy_id,
            "realized_pl": self.realized_pl,
            "realized_pl_percent": self.realized_pl_percent,
            "dividend_per_share": self.dividend_per_share,
            "withholding_tax": self.withholding_tax,
            "currency": self.currency.value,
            "exchange_rate": self.exchange_rate,
            "manual_realized_pl": self.manual_realized_pl,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        """Rebuild a record from a stored row, coercing malformed fields."""

        tx_id = str(data.get("id") or "")
        if not tx_id:
            tx_id = new_id()
            logger.warning("Transaction row without id, assigned %s", tx_id)

        raw_type = str(data.get("type") or "").lower()
        try:
            tx_type = TransactionType(raw_type)
        except ValueError:
            logger.warning("Unknown transaction type %r on %s, treating as buy", raw_type, tx_id)
            tx_type = TransactionType.BUY

        raw_currency = str(data.get("currency") or "").upper()
        try:
            currency = Currency(raw_currency)
        except ValueError:
            if raw_currency:
                logger.warning("Unknown currency %r on %s, treating as THB", raw_currency, tx_id)
            currency = Currency.THB

        related = data.get("related_buy_id")
        return cls(
            id=tx_id,
            ticker=str(data.get("ticker") or ""),
            type=tx_type,
            shares=_coerce_float(data.get("shares"), "shares", tx_id),
            price_per_share=_coerce_float(data.get("price_per_share"), "price_per_share", tx_id),
            total_value=_coerce_float(data.get("total_value"), "total_value", tx_id),
            commission=_coerce_float(data.get("commission"), "commission", tx_id),
            timestamp=_coerce_timestamp(data.get("timestamp"), "timestamp", tx_id),
            category=str(data.get("category") or DEFAULT_CATEGORY),
            related_buy_id=str(related) if related else None,
            realized_pl=_coerce_optional_float(data.get("realized_pl"), "realized_pl", tx_id),
            realized_pl_percent=_coerce_optional_float(
                data.get("realized_pl_percent"), "realized_pl_percent", tx_id
            ),
            dividend_per_share=_coerce_optional_float(
                data.get("dividend_per_share"), "dividend_per_share", tx_id
            ),
            withholding_tax=_coerce_optional_float(data.get("withholding_tax"), "withholding_tax", tx_id),
            currency=currency,
            exchange_rate=_coerce_optional_float(data.get("exchange_rate"), "exchange_rate", tx_id),
            manual_realized_pl=_coerce_optional_float(
                data.get("manual_realized_pl"), "manual_realized_pl", tx_id
            ),
        )


@dataclass(frozen=True)
class StockSplit:
    """A split of ``ratio`` new shares per old share effective on ``effective_date``."""

    id: str
    ticker: str
    ratio: float
    effective_date: datetime
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticker", self.ticker.strip().upper())
        object.__setattr__(self, "effective_date", as_utc(self.effective_date))
        object.__setattr__(self, "created_at", as_utc(self.created_at))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ticker": self.ticker,
            "ratio": self.ratio,
            "effective_date": _format_timestamp(self.effective_date),
            "created_at": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StockSplit":
        split_id = str(data.get("id") or "") or new_id()
        return cls(
            id=split_id,
            ticker=str(data.get("ticker") or ""),
            ratio=_coerce_float(data.get("ratio"), "ratio", split_id),
            effective_date=_coerce_timestamp(data.get("effective_date"), "effective_date", split_id),
            created_at=_coerce_timestamp(data.get("created_at"), "created_at", split_id),
        )


@dataclass(frozen=True)
class Holding:
    """Current state of one ticker, valued in the base currency."""

    ticker: str
    total_shares: float
    average_cost: float
    total_invested: float
    current_price: float
    market_value: float
    unrealized_pl: float
    unrealized_pl_percent: float
    realized_pl: float
    category: str
    is_closed: bool
    has_price_data: bool


@dataclass(frozen=True)
class PortfolioSummary:
    """Portfolio-wide totals in the base currency."""

    total_value: float
    total_invested: float
    total_realized_pl: float
    total_unrealized_pl: float
    total_dividends: float
    total_pl: float
    total_pl_percent: float
    best_performer: Holding | None = None
    worst_performer: Holding | None = None
