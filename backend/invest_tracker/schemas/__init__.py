"""Pydantic schema exports."""

from .portfolio import (
    BracketTaxSchema,
    CategoryCreateRequest,
    HoldingSchema,
    ImportResponse,
    ManualPriceRequest,
    ManualRealizedPLRequest,
    PortfolioResponse,
    PortfolioSummarySchema,
    SplitCreateRequest,
    SplitSchema,
    SyncStatusSchema,
    TaxIncomeRequest,
    TaxResultSchema,
    TransactionCreateRequest,
    TransactionSchema,
    TransactionUpdateRequest,
)

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
