"""External service clients."""

from app.clients.market_data import (
    INTERVALS,
    MarketDataClient,
    MarketDataError,
    RateLimiter,
    provider_interval,
)
from app.clients.telegram import NotificationError, TelegramNotifier

__all__ = [
    "INTERVALS",
    "MarketDataClient",
    "MarketDataError",
    "RateLimiter",
    "provider_interval",
    "NotificationError",
    "TelegramNotifier",
]
