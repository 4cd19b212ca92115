"""Pydantic schemas for the ledger, holdings and sync endpoints."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from invest_ledger.models import (
    DEFAULT_CATEGORY,
    Currency,
    Holding,
    StockSplit,
    Transaction,
    TransactionType,
)
from invest_ledger.pipeline import PortfolioView


class TransactionCreateRequest(BaseModel):
    ticker: str = Field(..., min_length=1, examples=["AAPL"])
    type: TransactionType
    shares: float = Field(default=0.0, ge=0)
    price_per_share: float = Field(..., ge=0, description="Per-share price, or the gross amount for dividends")
    timestamp: datetime
    commission: float = Field(default=0.0, ge=0)
    category: str = DEFAULT_CATEGORY
    currency: Currency = Currency.THB
    exchange_rate: float | None = Field(default=None, gt=0, description="USD/THB rate at trade time")
    withholding_tax: float | None = Field(default=None, ge=0)
    dividend_per_share: float | None = None
    related_buy_id: str | None = None
    manual_realized_pl: float | None = None
    id: str | None = Field(default=None, description="Client-generated id; assigned when omitted")

    @model_validator(mode="after")
    def _require_shares(self) -> "TransactionCreateRequest":
        if self.type is not TransactionType.DIVIDEND and self.shares <= 0:
            raise ValueError("Buy and sell transactions need a positive share count")
        return self

    def to_transaction(self) -> Transaction:
        return Transaction.create(
            self.ticker,
            self.type,
            self.shares,
            self.price_per_share,
            self.timestamp,
            commission=self.commission,
            category=self.category,
            currency=self.currency,
            exchange_rate=self.exchange_rate,
            withholding_tax=self.withholding_tax,
            dividend_per_share=self.dividend_per_share,
            related_buy_id=self.related_buy_id,
            manual_realized_pl=self.manual_realized_pl,
            id=self.id,
        )


class TransactionUpdateRequest(BaseModel):
    ticker: str | None = Field(default=None, min_length=1)
    type: TransactionType | None = None
    shares: float | None = Field(default=None, ge=0)
    price_per_share: float | None = Field(default=None, ge=0)
    total_value: float | None = Field(default=None, ge=0)
    timestamp: datetime | None = None
    commission: float | None = Field(default=None, ge=0)
    category: str | None = None
    currency: Currency | None = None
    exchange_rate: float | None = Field(default=None, gt=0)
    withholding_tax: float | None = Field(default=None, ge=0)
    dividend_per_share: float | None = None
    related_buy_id: str | None = None
    manual_realized_pl: float | None = None


class ManualRealizedPLRequest(BaseModel):
    value: float | None = Field(default=None, description="Override; null clears it")


class TransactionSchema(BaseModel):
    id: str
    ticker: str
    type: TransactionType
    shares: float
    price_per_share: float
    total_value: float
    commission: float
    timestamp: datetime
    category: str
    related_buy_id: str | None = None
    realized_pl: float | None = None
    realized_pl_percent: float | None = None
    dividend_per_share: float | None = None
    withholding_tax: float | None = None
    currency: Currency
    exchange_rate: float | None = None
    manual_realized_pl: float | None = None

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionSchema":
        return cls(**asdict(transaction))


class ImportResponse(BaseModel):
    imported: int


class SplitCreateRequest(BaseModel):
    ticker: str = Field(..., min_length=1, examples=["NVDA"])
    ratio: float = Field(..., gt=0, description="New shares per old share", examples=[10])
    effective_date: datetime
    id: str | None = None


class SplitSchema(BaseModel):
    id: str
    ticker: str
    ratio: float
    effective_date: datetime
    created_at: datetime

    @classmethod
    def from_domain(cls, split: StockSplit) -> "SplitSchema":
        return cls(**asdict(split))


class ManualPriceRequest(BaseModel):
    price: float | None = Field(default=None, description="Per-share price; null or 0 clears the override")


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)


class HoldingSchema(BaseModel):
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

    @classmethod
    def from_domain(cls, holding: Holding) -> "HoldingSchema":
        return cls(**asdict(holding))


class PortfolioSummarySchema(BaseModel):
    total_value: float
    total_invested: float
    total_realized_pl: float
    total_unrealized_pl: float
    total_dividends: float
    total_pl: float
    total_pl_percent: float
    best_performer: HoldingSchema | None = None
    worst_performer: HoldingSchema | None = None


class PortfolioResponse(BaseModel):
    holdings: list[HoldingSchema]
    summary: PortfolioSummarySchema
    transactions: list[TransactionSchema]
    duplicate_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: PortfolioView) -> "PortfolioResponse":
        return cls(
            holdings=[HoldingSchema.from_domain(h) for h in view.holdings],
            summary=PortfolioSummarySchema(**asdict(view.summary)),
            transactions=[TransactionSchema.from_domain(tx) for tx in view.transactions],
            duplicate_ids=list(view.duplicate_ids),
        )


class SyncStatusSchema(BaseModel):
    pending_count: int
    last_synced: datetime | None = None
    online: bool
    is_syncing: bool
    last_error: str | None = None


class TaxIncomeRequest(BaseModel):
    net_income: float = Field(..., ge=0, examples=[850_000])


class BracketTaxSchema(BaseModel):
    rate: float
    amount: float
    tax: float


class TaxResultSchema(BaseModel):
    total_tax: float
    marginal_rate: float
    effective_rate: float
    brackets: list[BracketTaxSchema]


__all__ = [
    "BracketTaxSchema",
    "CategoryCreateRequest",
    "HoldingSchema",
    "ImportResponse",
    "ManualPriceRequest",
    "ManualRealizedPLRequest",
    "PortfolioResponse",
    "PortfolioSummarySchema",
    "SplitCreateRequest",
    "SplitSchema",
    "SyncStatusSchema",
    "TaxIncomeRequest",
    "TaxResultSchema",
    "TransactionCreateRequest",
    "TransactionSchema",
    "TransactionUpdateRequest",
]
