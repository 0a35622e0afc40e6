"""Shared test fixtures for the market movers engine."""

from unittest.mock import AsyncMock

import pytest

from movers.config import (
    AppSettings,
    ExclusionSettings,
    RankingSettings,
    SamplerSettings,
    SchedulerSettings,
)
from movers.exchange.client import MarketDataClient


def make_ticker(
    symbol: str,
    last_price: str,
    volume_24h: str = "1000",
    turnover_24h: str = "1000000",
    price_24h_pcnt: str = "0.01",
    funding_rate: str = "0.0001",
) -> dict:
    """Raw Bybit v5 linear ticker row (string fields, as the API returns them)."""
    return {
        "symbol": symbol,
        "lastPrice": last_price,
        "volume24h": volume_24h,
        "turnover24h": turnover_24h,
        "price24hPcnt": price_24h_pcnt,
        "fundingRate": funding_rate,
    }


def make_kline_rows(
    count: int,
    oldest_open: str,
    newest_close: str,
    turnover: str = "100",
    start_ms: int = 1_700_000_000_000,
    step_ms: int = 60_000,
) -> list[list[str]]:
    """Raw kline rows, NEWEST FIRST, as Bybit returns them.

    Only the oldest open and newest close matter to the sampler; the
    candles in between are flat at the oldest open.
    """
    rows = []
    for i in range(count):
        ts = start_ms + i * step_ms
        open_ = oldest_open
        close = newest_close if i == count - 1 else oldest_open
        rows.append([str(ts), open_, open_, open_, close, "1", turnover])
    rows.reverse()
    return rows


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with test defaults (no inter-batch pauses, no startup backfill)."""
    return AppSettings(
        log_level="DEBUG",
        sampler=SamplerSettings(change_batch_delay=0.0, volume_batch_delay=0.0),
        ranking=RankingSettings(),
        exclusion=ExclusionSettings(backfill_enabled=False, backfill_day_delay=0.0),
        scheduler=SchedulerSettings(
            refresh_interval_gainers=3600.0,
            refresh_interval_volume=3600.0,
            refresh_interval_funding=3600.0,
        ),
    )


@pytest.fixture
def mock_client() -> AsyncMock:
    """Mock MarketDataClient with no data; tests assign return values/side effects."""
    client = AsyncMock(spec=MarketDataClient)
    client.fetch_linear_tickers.return_value = []
    client.fetch_klines.return_value = []
    return client
