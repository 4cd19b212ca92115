"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .portfolio import router as portfolio_router
from .prices import router as prices_router
from .splits import router as splits_router
from .sync import router as sync_router
from .tax import router as tax_router
from .transactions import router as transactions_router

api_router = APIRouter()
api_router.include_router(portfolio_router, prefix="/portfolio", tags=["portfolio"])
api_router.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
api_router.include_router(splits_router, prefix="/splits", tags=["splits"])
api_router.include_router(prices_router, prefix="/prices", tags=["prices"])
api_router.include_router(sync_router, prefix="/sync", tags=["sync"])
api_router.include_router(tax_router, prefix="/tax", tags=["tax"])

__all__ = ["api_router"]
