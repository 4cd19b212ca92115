"""Transaction ledger endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from invest_ledger.ledger import FilterOptions, filter_transactions
from invest_ledger.models import TransactionType
from invest_tracker.api.dependencies import get_portfolio_service
from invest_tracker.schemas import (
    ImportResponse,
    ManualRealizedPLRequest,
    PortfolioResponse,
    TransactionCreateRequest,
    TransactionSchema,
    TransactionUpdateRequest,
)
from invest_tracker.services.portfolio import PortfolioService

router = APIRouter()


@router.get("", response_model=list[TransactionSchema])
async def get_transactions(
    ticker: str | None = None,
    type: TransactionType | None = None,
    category: str | None = None,
    profit_only: bool = False,
    loss_only: bool = False,
    start: datetime | None = Query(default=None, description="Inclusive lower bound on the trade time"),
    end: datetime | None = Query(default=None, description="Inclusive upper bound on the trade time"),
    service: PortfolioService = Depends(get_portfolio_service),
) -> list[TransactionSchema]:
    """List split-adjusted transactions with their computed realized P/L."""

    view = await service.view()
    filters = FilterOptions(
        ticker=ticker,
        type=type,
        category=category,
        profit_only=profit_only,
        loss_only=loss_only,
        start_date=start,
        end_date=end,
    )
    return [TransactionSchema.from_domain(tx) for tx in filter_transactions(view.transactions, filters)]


@router.post("", response_model=PortfolioResponse, status_code=status.HTTP_201_CREATED)
async def post_transaction(
    payload: TransactionCreateRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    view = await service.add_transaction(payload.to_transaction())
    return PortfolioResponse.from_view(view)


@router.post("/import", response_model=ImportResponse, status_code=status.HTTP_201_CREATED)
async def import_transactions(
    payload: list[TransactionCreateRequest],
    service: PortfolioService = Depends(get_portfolio_service),
) -> ImportResponse:
    imported = await service.import_transactions(item.to_transaction() for item in payload)
    return ImportResponse(imported=imported)


@router.put("/{transaction_id}", response_model=PortfolioResponse)
async def put_transaction(
    transaction_id: str,
    payload: TransactionUpdateRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    changes = payload.model_dump(exclude_unset=True)
    view = await service.update_transaction(transaction_id, **changes)
    return PortfolioResponse.from_view(view)


@router.put("/{transaction_id}/realized-pl", response_model=PortfolioResponse)
async def put_manual_realized_pl(
    transaction_id: str,
    payload: ManualRealizedPLRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    view = await service.set_manual_realized_pl(transaction_id, payload.value)
    return PortfolioResponse.from_view(view)


@router.delete("/{transaction_id}", response_model=PortfolioResponse)
async def delete_transaction(
    transaction_id: str,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    return PortfolioResponse.from_view(await service.delete_transaction(transaction_id))


__all__ = ["router"]
