"""Refresh scheduler -- three independent fetch/rank/commit loops.

Each loop owns one store section:

  gainers  every 5 min   snapshot -> 5 change windows -> commit
  volume   every 5 min   snapshot -> 5 volume windows (+ daily history
                         roll-over on 1d) -> commit
  funding  every 60 s    snapshot -> funding extremes -> commit

A loop runs its cycle to completion and only then sleeps, so a slow cycle
delays its own next tick instead of overlapping it. Any exception in a
cycle is logged and the section keeps its last committed value; the other
loops are unaffected.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping

from movers.config import AppSettings
from movers.exchange.instruments import is_usdt_perpetual
from movers.logging import bind_loop_context, get_logger
from movers.market_data.sampler import HistoricalSampler
from movers.market_data.snapshot_fetcher import SnapshotFetcher
from movers.market_data.timeframes import ALL_TIMEFRAMES, Timeframe
from movers.models import (
    FundingSection,
    GainersSection,
    InstrumentSnapshot,
    MoverTable,
    VolumeSection,
    VolumeTable,
    frozen_mapping,
)
from movers.ranking.exclusion import ExclusionEngine
from movers.ranking.ranker import MarketRanker
from movers.store import FUNDING, GAINERS, VOLUME, MarketDataStore

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RefreshScheduler:
    """Drives the gainers, volume and funding refresh loops.

    Args:
        settings: Application-wide settings (cadences, exclusion window).
        fetcher: Full-universe ticker snapshot source.
        sampler: Batched candle sampler.
        ranker: Ranking table builder.
        exclusion: Daily volume history and exclusion set.
        store: Destination for committed sections.
    """

    def __init__(
        self,
        settings: AppSettings,
        fetcher: SnapshotFetcher,
        sampler: HistoricalSampler,
        ranker: MarketRanker,
        exclusion: ExclusionEngine,
        store: MarketDataStore,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._sampler = sampler
        self._ranker = ranker
        self._exclusion = exclusion
        self._store = store
        self._running = False
        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Backfill volume history (if enabled), then launch the three loops."""
        if self._running:
            logger.warning("scheduler_already_running")
            return

        if self._settings.exclusion.backfill_enabled:
            try:
                await self.run_backfill()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("backfill_failed", exc_info=True)

        self._running = True
        cadences = self._settings.scheduler
        self._tasks = [
            asyncio.create_task(
                self._loop(GAINERS, self.refresh_gainers, cadences.refresh_interval_gainers),
                name="refresh-gainers",
            ),
            asyncio.create_task(
                self._loop(VOLUME, self.refresh_volume, cadences.refresh_interval_volume),
                name="refresh-volume",
            ),
            asyncio.create_task(
                self._loop(FUNDING, self.refresh_funding, cadences.refresh_interval_funding),
                name="refresh-funding",
            ),
        ]
        logger.info(
            "scheduler_started",
            gainers_interval=cadences.refresh_interval_gainers,
            volume_interval=cadences.refresh_interval_volume,
            funding_interval=cadences.refresh_interval_funding,
        )

    async def stop(self) -> None:
        """Cancel all loops and wait for them to unwind."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("scheduler_stopped")

    async def run_backfill(self, now_ms: int | None = None) -> int:
        """Seed the exclusion history from the last completed UTC days."""
        now_ms = _now_ms() if now_ms is None else now_ms
        universe = await self._fetcher.fetch_universe()
        return await self._exclusion.backfill(
            self._sampler, _volume_universe(universe.instruments), now_ms
        )

    # ──────────────────────────────────────────────
    # Refresh cycles
    # ──────────────────────────────────────────────

    async def refresh_gainers(self) -> GainersSection:
        """Recompute gainers/losers for every timeframe and commit them together."""
        started = time.monotonic()
        universe = await self._fetcher.fetch_universe()
        prices = universe.collapsed_prices

        tables: dict[str, MoverTable] = {}
        for timeframe in ALL_TIMEFRAMES:
            samples = await self._sampler.sample_price_changes(prices.keys(), timeframe)
            tables[timeframe.value] = self._ranker.rank_gainers_losers(prices, samples)
            logger.info("gainers_timeframe_ranked", timeframe=timeframe.value, symbols=len(samples))

        section = GainersSection(tables=frozen_mapping(tables))
        self._store.commit_gainers(section)
        logger.info(
            "gainers_refresh_complete",
            symbols=len(prices),
            snapshot_age_seconds=round(time.time() - universe.fetched_at, 1),
            duration_seconds=round(time.monotonic() - started, 1),
        )
        return section

    async def refresh_volume(self, now_ms: int | None = None) -> VolumeSection:
        """Recompute volume movers for every timeframe and commit them together.

        The 1d step reads yesterday's completed daily candle and feeds its
        top symbols into the exclusion history before ranking.
        """
        started = time.monotonic()
        now_ms = _now_ms() if now_ms is None else now_ms
        universe = await self._fetcher.fetch_universe()
        instruments = _volume_universe(universe.instruments)

        tables: dict[str, VolumeTable] = {}
        for timeframe in ALL_TIMEFRAMES:
            cutoff_ms = timeframe.volume_cutoff_ms(now_ms)
            samples = await self._sampler.sample_volumes(instruments, timeframe, cutoff_ms)

            if timeframe is Timeframe.D1:
                self._update_history(samples, cutoff_ms, now_ms)

            table = self._ranker.rank_volume(
                samples,
                instruments,
                excluded=self._exclusion.excluded,
                closed_day=timeframe is Timeframe.D1,
            )
            tables[timeframe.value] = table
            logger.info(
                "volume_timeframe_ranked",
                timeframe=timeframe.value,
                contracts=len(samples),
                excluded=table.excluded_count,
            )

        section = VolumeSection(
            tables=frozen_mapping(tables),
            excluded=self._exclusion.excluded,
        )
        self._store.commit_volume(section)
        logger.info(
            "volume_refresh_complete",
            contracts=len(instruments),
            snapshot_age_seconds=round(time.time() - universe.fetched_at, 1),
            excluded_assets=len(section.excluded),
            duration_seconds=round(time.monotonic() - started, 1),
        )
        return section

    async def refresh_funding(self) -> FundingSection:
        """Rank funding extremes over every contract and commit."""
        universe = await self._fetcher.fetch_universe()
        top_positive, top_negative = self._ranker.rank_funding(universe.instruments)

        section = FundingSection(top_positive=top_positive, top_negative=top_negative)
        self._store.commit_funding(section)
        logger.info(
            "funding_refresh_complete",
            positive=len(top_positive),
            negative=len(top_negative),
            top_rate_pct=str(top_positive[0].funding_rate_pct) if top_positive else None,
            bottom_rate_pct=str(top_negative[0].funding_rate_pct) if top_negative else None,
        )
        return section

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    def _update_history(self, samples: dict, cutoff_ms: int, now_ms: int) -> None:
        if not samples:
            # An empty day would count as a real record and skew exclusions
            logger.warning("daily_volume_unavailable", cutoff_ms=cutoff_ms)
            self._exclusion.prune(now_ms)
            self._exclusion.recompute()
            return
        top = self._ranker.top_symbols_by_volume(samples, self._settings.exclusion.top_count)
        if self._exclusion.roll_over(top, cutoff_ms, now_ms):
            logger.info(
                "daily_top_volume_recorded",
                symbols=len(top),
                already_excluded=sum(1 for s in top if self._exclusion.is_excluded(s)),
            )

    async def _loop(
        self,
        category: str,
        refresh: Callable[[], Awaitable[object]],
        interval: float,
    ) -> None:
        """Run one refresh cycle per tick with its own failure boundary."""
        bind_loop_context(category)
        while self._running:
            try:
                await refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("refresh_cycle_failed", exc_info=True)
            if self._running:
                await asyncio.sleep(interval)


def _volume_universe(instruments: Mapping[str, InstrumentSnapshot]) -> dict[str, InstrumentSnapshot]:
    """USDT perpetuals only; dated and USDC contracts are left out of volume rankings."""
    return {
        symbol: snapshot
        for symbol, snapshot in instruments.items()
        if is_usdt_perpetual(symbol)
    }
