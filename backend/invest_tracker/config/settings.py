"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_BASE_CURRENCY = "THB"
DEFAULT_EXCHANGE_RATE = 34.5


class AppSettings(BaseSettings):
    """Configuration options for the Invest Tracker service."""

    app_name: str = Field(default="Invest Tracker")
    base_currency: str = Field(default=DEFAULT_BASE_CURRENCY)
    default_exchange_rate: float = Field(
        default=DEFAULT_EXCHANGE_RATE,
        gt=0,
        description="USD/THB rate used when the price feed cannot provide one.",
    )
    dust_value_threshold: float = Field(
        default=1.0,
        description="Positions worth less than this in their own currency count as closed.",
    )

    local_database_url: str = Field(
        default="sqlite+aiosqlite:///./invest_tracker.db",
        description="SQLAlchemy URL for the local key-value state store.",
    )

    remote_store_url: str | None = Field(
        default=None,
        description="Base URL of the remote row store; unset keeps the tracker offline.",
    )
    remote_store_token: str | None = Field(default=None)
    remote_timeout_seconds: float = Field(default=15.0)
    remote_max_retries: int = Field(default=5, ge=0)
    remote_backoff_base_seconds: float = Field(default=0.5, ge=0)
    remote_backoff_max_seconds: float = Field(default=8.0, ge=0)
    remote_cache_ttl_seconds: int = Field(default=300, ge=0)

    price_cache_ttl_seconds: int = Field(default=300, ge=0)
    price_feed_factory: str | None = Field(
        default=None,
        description="Dotted \"module:callable\" taking the settings and returning a price feed.",
    )

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="invest-tracker")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"remote_store_token"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_EXCHANGE_RATE",
    "get_settings",
]
