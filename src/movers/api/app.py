"""FastAPI application factory for the read-only rankings API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from movers.api import routes
from movers.store import MarketDataStore


def create_api_app(store: MarketDataStore, lifespan: Any = None) -> FastAPI:
    """Create and configure the rankings API.

    Args:
        store: Store the endpoints read from.
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the refresh scheduler.

    Returns:
        Configured FastAPI application with the ranking routes under /api.
    """
    app = FastAPI(
        title="Bybit Market Movers",
        lifespan=lifespan,
    )
    app.state.store = store
    app.include_router(routes.router, prefix="/api")
    return app
