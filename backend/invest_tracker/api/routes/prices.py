"""Manual price override endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from invest_tracker.api.dependencies import get_portfolio_service
from invest_tracker.schemas import ManualPriceRequest, PortfolioResponse
from invest_tracker.services.portfolio import PortfolioService

router = APIRouter()


@router.get("/manual", response_model=dict[str, float])
async def get_manual_prices(service: PortfolioService = Depends(get_portfolio_service)) -> dict[str, float]:
    return service.manual_prices


@router.put("/manual/{ticker}", response_model=PortfolioResponse)
async def put_manual_price(
    ticker: str,
    payload: ManualPriceRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    return PortfolioResponse.from_view(await service.set_manual_price(ticker, payload.price))


__all__ = ["router"]
