"""Portfolio view, categories and reset endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from invest_tracker.api.dependencies import get_portfolio_service
from invest_tracker.schemas import CategoryCreateRequest, PortfolioResponse
from invest_tracker.services.portfolio import PortfolioService

router = APIRouter()


@router.get("", response_model=PortfolioResponse)
async def get_portfolio(service: PortfolioService = Depends(get_portfolio_service)) -> PortfolioResponse:
    return PortfolioResponse.from_view(await service.view())


@router.get("/categories", response_model=list[str])
async def get_categories(service: PortfolioService = Depends(get_portfolio_service)) -> list[str]:
    return service.categories


@router.post("/categories", response_model=list[str], status_code=status.HTTP_201_CREATED)
async def post_category(
    payload: CategoryCreateRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> list[str]:
    return await service.add_category(payload.name)


@router.get("/categories/hidden", response_model=list[str])
async def get_hidden_categories(service: PortfolioService = Depends(get_portfolio_service)) -> list[str]:
    return service.hidden_categories


@router.put("/categories/{name}/hidden", response_model=list[str])
async def hide_category(name: str, service: PortfolioService = Depends(get_portfolio_service)) -> list[str]:
    return await service.set_category_hidden(name, True)


@router.delete("/categories/{name}/hidden", response_model=list[str])
async def show_category(name: str, service: PortfolioService = Depends(get_portfolio_service)) -> list[str]:
    return await service.set_category_hidden(name, False)


@router.post("/reset", response_model=PortfolioResponse)
async def reset_portfolio(service: PortfolioService = Depends(get_portfolio_service)) -> PortfolioResponse:
    """Delete every transaction and split; the deletions are queued for the remote store."""

    return PortfolioResponse.from_view(await service.reset())


__all__ = ["router"]
