"""Service layer for the tracker."""

from .portfolio import PortfolioService, SyncStatus
from .prices import CachingPriceFeed, PriceFeed, StaticPriceFeed

__all__ = ["CachingPriceFeed", "PortfolioService", "PriceFeed", "StaticPriceFeed", "SyncStatus"]
