"""Market data layer -- universe snapshots, timeframes and batched candle sampling."""

from movers.market_data.sampler import HistoricalSampler
from movers.market_data.snapshot_fetcher import SnapshotFetcher
from movers.market_data.timeframes import ALL_TIMEFRAMES, Timeframe

__all__ = ["ALL_TIMEFRAMES", "HistoricalSampler", "SnapshotFetcher", "Timeframe"]
