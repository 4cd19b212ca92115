"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invest_tracker.api.routes import api_router
from invest_tracker.config import AppSettings, get_settings
from invest_tracker.core.logging import setup_logging
from invest_tracker.core.telemetry import instrument_engine, setup_telemetry
from invest_tracker.services.factory import open_portfolio_service
from invest_tracker.services.portfolio import PortfolioService
from invest_tracker.sync.remote import RemoteStoreError, TransientRemoteError

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LookupError)
    async def _not_found(request: Request, exc: LookupError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def _invalid(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})

    @app.exception_handler(RemoteStoreError)
    async def _remote_failed(request: Request, exc: RemoteStoreError) -> JSONResponse:
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if isinstance(exc, TransientRemoteError)
            else status.HTTP_502_BAD_GATEWAY
        )
        logger.warning("Remote store failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(settings: AppSettings | None = None, *, service: PortfolioService | None = None) -> FastAPI:
    """Build the application.

    When ``service`` is given it is used as-is and no local database is opened.
    """

    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, version="0.1.0")
    app.state.settings = settings
    app.state.portfolio_service = service
    app.state.engine = None
    setup_logging()
    setup_telemetry(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["traceparent", "tracestate", "x-trace-id"],
    )

    @app.on_event("startup")
    async def startup() -> None:
        """Open local storage and replay changes left from the last session."""

        if app.state.portfolio_service is not None:
            return
        logger.info("Starting with settings %s", settings.dict_for_logging())
        engine, portfolio_service = await open_portfolio_service(settings)
        instrument_engine(engine)
        app.state.engine = engine
        app.state.portfolio_service = portfolio_service

    @app.on_event("shutdown")
    async def shutdown() -> None:
        if app.state.engine is not None:
            await app.state.engine.dispose()

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "base_currency": settings.base_currency,
        }

    _register_error_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
