"""Entry point for the market movers engine.

Wires all components together, optionally serves the read-only rankings
API, and starts the refresh scheduler. When the API is enabled (default),
the scheduler and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Component wiring order (in build_components):
1. AppSettings (configuration)
2. Logging setup
3. BybitClient (public market data via ccxt)
4. SnapshotFetcher (full-universe tickers)
5. HistoricalSampler (batched candle windows)
6. MarketRanker (ranking tables)
7. ExclusionEngine (7-day volume history)
8. MarketDataStore (committed sections)
9. RefreshScheduler (three refresh loops)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from movers.config import AppSettings
from movers.exchange.bybit_client import BybitClient
from movers.logging import get_logger, setup_logging
from movers.market_data.sampler import HistoricalSampler
from movers.market_data.snapshot_fetcher import SnapshotFetcher
from movers.ranking.exclusion import ExclusionEngine
from movers.ranking.ranker import MarketRanker
from movers.scheduler import RefreshScheduler
from movers.store import MarketDataStore


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all engine components from settings.

    Does NOT connect the client -- that happens in the lifespan (API mode)
    or run() (headless mode).
    """
    client = BybitClient(settings.exchange)
    fetcher = SnapshotFetcher(client)
    sampler = HistoricalSampler(client, settings.sampler)
    ranker = MarketRanker(settings.ranking)
    exclusion = ExclusionEngine(settings.exclusion)
    store = MarketDataStore()
    scheduler = RefreshScheduler(
        settings=settings,
        fetcher=fetcher,
        sampler=sampler,
        ranker=ranker,
        exclusion=exclusion,
        store=store,
    )
    return {
        "client": client,
        "fetcher": fetcher,
        "sampler": sampler,
        "ranker": ranker,
        "exclusion": exclusion,
        "store": store,
        "scheduler": scheduler,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the client and run the scheduler for the lifetime of the API.

    The scheduler is started as a background task so the API answers
    (with "loading") while the history backfill is still running.
    """
    logger = get_logger("movers.main")
    components = app.state.components

    await components["client"].connect()
    start_task = asyncio.create_task(components["scheduler"].start())
    logger.info("lifespan_started")

    yield

    start_task.cancel()
    try:
        await start_task
    except asyncio.CancelledError:
        pass
    await components["scheduler"].stop()
    await components["client"].close()
    logger.info("market_movers_stopped")


async def _run_headless(components: dict[str, Any]) -> None:
    """Run the scheduler without the API until SIGINT/SIGTERM."""
    logger = get_logger("movers.main")
    scheduler: RefreshScheduler = components["scheduler"]
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await components["client"].connect()
        await scheduler.start()
        await stop_event.wait()
        logger.info("graceful_shutdown_signal")
    finally:
        await scheduler.stop()
        await components["client"].close()
        logger.info("market_movers_stopped")


async def run() -> None:
    """Run the market movers engine, with or without the rankings API."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("movers.main")

    components = build_components(settings)

    if settings.api.enabled:
        from movers.api.app import create_api_app

        app = create_api_app(components["store"], lifespan=lifespan)
        app.state.components = components

        logger.info("starting_with_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        logger.info("starting_without_api")
        await _run_headless(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
