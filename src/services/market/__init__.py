"""Market data services."""

from src.services.market.prices import MarketDataError, MarketDataService

__all__ = [
    "MarketDataError",
    "MarketDataService",
]
