"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ..services.portfolio import PortfolioService


def get_portfolio_service(request: Request) -> PortfolioService:
    service = getattr(request.app.state, "portfolio_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Portfolio service not ready")
    return service


__all__ = ["get_portfolio_service"]
