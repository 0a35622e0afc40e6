"""Rolling 7-day exclusion of chronically high-volume base assets.

The volume-mover tables are meant to surface transient attention spikes.
Majors sit at the top of the volume table every single day, so any base
asset that made the daily top 20 on at least 5 of the last 7 recorded days
is suppressed from them.

State is an append-only list of daily records (one per UTC day). The
exclusion set is never stored on its own: it is rebuilt from scratch from
the retained records after every change.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from movers.config import ExclusionSettings
from movers.exchange.instruments import base_asset
from movers.logging import get_logger
from movers.market_data.timeframes import DAY_MS, Timeframe, utc_day_start_ms
from movers.models import InstrumentSnapshot, VolumeHistoryRecord
from movers.ranking.ranker import MarketRanker

if TYPE_CHECKING:
    from movers.market_data.sampler import HistoricalSampler

logger = get_logger(__name__)


class ExclusionEngine:
    """Maintains daily top-volume history and the derived exclusion set.

    Args:
        settings: Window length, daily list size and occurrence threshold.
    """

    def __init__(self, settings: ExclusionSettings) -> None:
        self._settings = settings
        self._history: list[VolumeHistoryRecord] = []
        self._excluded: frozenset[str] = frozenset()

    @property
    def history(self) -> tuple[VolumeHistoryRecord, ...]:
        """Retained daily records, oldest first."""
        return tuple(self._history)

    @property
    def excluded(self) -> frozenset[str]:
        """Base assets currently suppressed from volume rankings."""
        return self._excluded

    def is_excluded(self, symbol: str) -> bool:
        return base_asset(symbol) in self._excluded

    async def backfill(
        self,
        sampler: HistoricalSampler,
        instruments: Mapping[str, InstrumentSnapshot],
        now_ms: int,
    ) -> int:
        """Seed history with the completed UTC days before ``now_ms``.

        Each day is one daily candle per instrument, cut off at that day's
        last millisecond. The sampler drops symbols whose candle failed to
        load, so a day where every symbol failed comes back empty and is
        logged and skipped.

        Returns:
            Number of records added.
        """
        today = utc_day_start_ms(now_ms)
        added = 0

        for days_ago in range(1, self._settings.window_days + 1):
            cutoff_ms = today - (days_ago - 1) * DAY_MS - 1
            samples = await sampler.sample_volumes(instruments, Timeframe.D1, cutoff_ms)

            if samples:
                top = MarketRanker.top_symbols_by_volume(samples, self._settings.top_count)
                if self._append_if_new(top, cutoff_ms):
                    added += 1
                logger.info("backfill_day_recorded", days_ago=days_ago, symbols=len(top))
            else:
                logger.warning("backfill_day_empty", days_ago=days_ago)

            if days_ago < self._settings.window_days:
                await asyncio.sleep(self._settings.backfill_day_delay)

        self.prune(now_ms)
        self.recompute()
        logger.info(
            "backfill_complete",
            records=len(self._history),
            excluded=len(self._excluded),
        )
        return added

    def roll_over(self, top_symbols: Sequence[str], cutoff_ms: int, now_ms: int) -> bool:
        """Record the day ending at ``cutoff_ms`` unless it is already recorded.

        Always prunes and recomputes afterwards, so records age out even on
        days that add nothing.

        Returns:
            True if a new record was appended.
        """
        appended = self._append_if_new(top_symbols, cutoff_ms)
        if appended:
            logger.info("volume_history_day_added", day_ms=utc_day_start_ms(cutoff_ms))
        self.prune(now_ms)
        self.recompute()
        return appended

    def prune(self, now_ms: int) -> None:
        """Drop records older than the window and cap the record count."""
        oldest_allowed = now_ms - self._settings.window_days * DAY_MS
        kept = [r for r in self._history if r.timestamp_ms >= oldest_allowed]
        self._history = kept[-self._settings.window_days:] if self._settings.window_days > 0 else []

    def recompute(self) -> frozenset[str]:
        """Rebuild the exclusion set from the retained records."""
        counts: Counter[str] = Counter()
        for record in self._history:
            counts.update({base_asset(symbol) for symbol in record.top_symbols})

        self._excluded = frozenset(
            base for base, count in counts.items()
            if count >= self._settings.min_occurrences
        )
        return self._excluded

    def _append_if_new(self, top_symbols: Sequence[str], cutoff_ms: int) -> bool:
        day = utc_day_start_ms(cutoff_ms)
        if any(utc_day_start_ms(r.timestamp_ms) == day for r in self._history):
            return False
        self._history.append(
            VolumeHistoryRecord(
                timestamp_ms=cutoff_ms,
                top_symbols=tuple(top_symbols[: self._settings.top_count]),
            )
        )
        self._history.sort(key=lambda r: r.timestamp_ms)
        return True
