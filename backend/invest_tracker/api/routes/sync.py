"""Sync endpoints for the offline change queue."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from invest_tracker.api.dependencies import get_portfolio_service
from invest_tracker.schemas import PortfolioResponse, SyncStatusSchema
from invest_tracker.services.portfolio import PortfolioService

router = APIRouter()


@router.post("", response_model=PortfolioResponse)
async def post_sync(service: PortfolioService = Depends(get_portfolio_service)) -> PortfolioResponse:
    """Push pending changes and pull the remote ledger."""

    if service.remote is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No remote store configured")
    return PortfolioResponse.from_view(await service.sync())


@router.post("/connectivity", response_model=SyncStatusSchema)
async def post_connectivity_restored(
    service: PortfolioService = Depends(get_portfolio_service),
) -> SyncStatusSchema:
    await service.on_connectivity_restored()
    return SyncStatusSchema(**asdict(await service.sync_status()))


@router.get("/status", response_model=SyncStatusSchema)
async def get_sync_status(service: PortfolioService = Depends(get_portfolio_service)) -> SyncStatusSchema:
    return SyncStatusSchema(**asdict(await service.sync_status()))


__all__ = ["router"]
