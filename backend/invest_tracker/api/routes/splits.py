"""Stock split endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from invest_ledger.models import StockSplit, new_id
from invest_tracker.api.dependencies import get_portfolio_service
from invest_tracker.schemas import PortfolioResponse, SplitCreateRequest, SplitSchema
from invest_tracker.services.portfolio import PortfolioService

router = APIRouter()


@router.get("", response_model=list[SplitSchema])
async def get_splits(service: PortfolioService = Depends(get_portfolio_service)) -> list[SplitSchema]:
    splits = sorted(service.splits, key=lambda s: (s.effective_date, s.ticker))
    return [SplitSchema.from_domain(split) for split in splits]


@router.post("", response_model=PortfolioResponse, status_code=status.HTTP_201_CREATED)
async def post_split(
    payload: SplitCreateRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    split = StockSplit(
        id=payload.id or new_id(),
        ticker=payload.ticker,
        ratio=payload.ratio,
        effective_date=payload.effective_date,
    )
    return PortfolioResponse.from_view(await service.add_split(split))


@router.delete("/{split_id}", response_model=PortfolioResponse)
async def delete_split(
    split_id: str,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    return PortfolioResponse.from_view(await service.remove_split(split_id))


__all__ = ["router"]
