"""Twelve Data REST client for fetching recent price history."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from core.models import PriceSeries

logger = logging.getLogger(__name__)

# Bar interval in minutes -> provider interval name
INTERVALS: dict[int, str] = {
    1: "1min",
    5: "5min",
    15: "15min",
    30: "30min",
    45: "45min",
    60: "1h",
    120: "2h",
    240: "4h",
    1440: "1day",
}


class MarketDataError(Exception):
    """The market data provider failed or returned an error payload."""


def provider_interval(interval_minutes: int) -> str:
    """Map a bar interval in minutes to the provider's interval name.

    Raises:
        ValueError: If the provider has no such interval.
    """
    try:
        return INTERVALS[interval_minutes]
    except KeyError:
        supported = ", ".join(str(m) for m in sorted(INTERVALS))
        raise ValueError(
            f"Unsupported interval {interval_minutes}min. Supported: {supported}"
        ) from None


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 8):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


class MarketDataClient:
    """Twelve Data time series client."""

    BASE_URL = "https://api.twelvedata.com"

    def __init__(
        self,
        api_key: str = "",
        base_url: str | None = None,
        timeout: float = 15.0,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """Make an API request, raising MarketDataError on any failure."""
        if self.rate_limiter:
            await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.get(endpoint, params={**params, "apikey": self.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("Market data request %s failed: %s", endpoint, e)
            raise MarketDataError(f"Request to {endpoint} failed: {e}") from e
        except ValueError as e:
            raise MarketDataError(f"Invalid JSON from {endpoint}") from e

        if not isinstance(data, dict) or data.get("status") == "error":
            message = data.get("message", "unknown error") if isinstance(data, dict) else data
            logger.error("Market data error for %s: %s", params.get("symbol"), message)
            raise MarketDataError(str(message))
        return data

    async def get_time_series_rows(
        self,
        symbol: str,
        interval_minutes: int,
        outputsize: int = 250,
        start_time: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch raw bars with string-typed OHLC fields.

        Without ``start_time`` the newest ``outputsize`` bars are returned,
        newest first. With ``start_time`` the window is anchored there and
        returned oldest first, so a capped ``outputsize`` drops the newest
        bars rather than the ones right after ``start_time``.

        Args:
            symbol: Instrument symbol (e.g., "AAPL", "EUR/USD")
            interval_minutes: Bar interval in minutes
            outputsize: Maximum number of bars
            start_time: Only bars at or after this time (UTC)

        Returns:
            List of provider rows
        """
        params: dict[str, Any] = {
            "symbol": symbol,
            "interval": provider_interval(interval_minutes),
            "outputsize": outputsize,
            "timezone": "UTC",
            "order": "asc" if start_time else "desc",
        }
        if start_time:
            params["start_date"] = start_time.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        data = await self._request("/time_series", params)
        values = data.get("values")
        if not isinstance(values, list):
            raise MarketDataError(f"No values in time series response for {symbol}")
        return values

    async def get_price_series(
        self,
        symbol: str,
        interval_minutes: int,
        outputsize: int = 250,
        start_time: datetime | None = None,
    ) -> PriceSeries:
        """Fetch bars and build an oldest-first PriceSeries.

        Raises:
            MarketDataError: Provider failure.
            MalformedInputError: Provider returned unusable bars.
        """
        rows = await self.get_time_series_rows(symbol, interval_minutes, outputsize, start_time)
        series = PriceSeries.from_provider(
            symbol, interval_minutes, rows, newest_first=start_time is None
        )
        logger.debug("Fetched %d bars for %s %dmin", len(series), symbol, interval_minutes)
        return series
