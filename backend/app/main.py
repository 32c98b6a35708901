"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from app.api import router
from app.clients import MarketDataClient, RateLimiter, TelegramNotifier
from app.config import Settings, get_settings
from app.services import SignalService
from app.storage import InMemorySignalStore, RedisSignalStore
from app.strategy_presets import load_presets
from core.strategy import list_families

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_service(settings: Settings) -> SignalService:
    """Construct the signal service and its collaborators from settings."""
    market_data = MarketDataClient(
        api_key=settings.twelvedata_api_key,
        base_url=settings.twelvedata_base_url,
        timeout=settings.http_timeout,
        rate_limiter=(
            RateLimiter(settings.market_data_calls_per_minute)
            if settings.market_data_calls_per_minute > 0
            else None
        ),
    )

    if settings.redis_url:
        store = RedisSignalStore.from_url(settings.redis_url, prefix=settings.signal_key_prefix)
        logger.info("Signal store: redis (%s)", settings.redis_url)
    else:
        store = InMemorySignalStore()
        logger.warning("REDIS_URL not set, signals are kept in memory only")

    notifier = None
    if settings.telegram_configured:
        notifier = TelegramNotifier(
            bot_token=settings.telegram_bot_token,
            channel_id=settings.telegram_channel_id,
            base_url=settings.telegram_base_url,
            timeout=settings.http_timeout,
        )
    else:
        logger.warning("Telegram credentials missing, notifications disabled")

    return SignalService(
        market_data=market_data,
        store=store,
        presets=load_presets(settings.strategies_file),
        notifier=notifier,
        outputsize=settings.default_outputsize,
        verify_outputsize=settings.verify_outputsize,
        verify_scan_limit=settings.verify_scan_limit,
        notify_hold=settings.notify_hold,
    )


async def close_service(service: SignalService) -> None:
    await service.market_data.close()
    if service.notifier:
        await service.notifier.close()
    if isinstance(service.store, RedisSignalStore):
        await service.store.close()


def create_app(settings: Settings | None = None, service: SignalService | None = None) -> FastAPI:
    """Create the FastAPI app.

    A prebuilt ``service`` is used as-is and not closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        app.state.signal_service = service or build_service(settings or get_settings())
        logger.info("Signal service started (rule families: %s)", ", ".join(list_families()))
        try:
            yield
        finally:
            if owned:
                await close_service(app.state.signal_service)
            logger.info("Shutdown complete")

    app = FastAPI(
        title="Signal Lifecycle Engine",
        description="Indicator-based trading signals with later WIN/LOSS verification",
        version=VERSION,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Signal Lifecycle Engine",
            "version": VERSION,
            "docs": "/docs",
            "strategies": list_families(),
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


configure_logging(get_settings().log_level)
app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
