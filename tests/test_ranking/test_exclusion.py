"""Tests for ExclusionEngine history maintenance and backfill."""

from decimal import Decimal
from unittest.mock import AsyncMock

import ccxt.async_support as ccxt_async
import pytest

from conftest import make_kline_rows
from movers.config import ExclusionSettings, SamplerSettings
from movers.market_data.sampler import HistoricalSampler
from movers.market_data.timeframes import DAY_MS, Timeframe
from movers.models import HistoricalSample, InstrumentSnapshot
from movers.ranking.exclusion import ExclusionEngine

# 2024-01-10 12:34:56.789 UTC
NOW_MS = 1_704_890_096_789
TODAY_MS = 1_704_844_800_000


def _cutoff(days_ago: int) -> int:
    """Last millisecond of the UTC day ``days_ago`` days before today."""
    return TODAY_MS - (days_ago - 1) * DAY_MS - 1


def _sample(symbol: str, volume: str) -> HistoricalSample:
    return HistoricalSample(
        symbol=symbol,
        reference_price=Decimal("1"),
        close_price=Decimal("1"),
        timeframe_volume=Decimal(volume),
        price_change_pct=Decimal("0"),
    )


@pytest.fixture
def engine() -> ExclusionEngine:
    return ExclusionEngine(ExclusionSettings(backfill_day_delay=0.0))


class TestThreshold:
    """Tests for the occurrence threshold."""

    def test_five_of_seven_excluded_four_not(self, engine: ExclusionEngine) -> None:
        for days_ago in range(1, 8):
            top = ["SOLUSDT"]
            if days_ago <= 5:
                top.append("BTCUSDT")
            if days_ago <= 4:
                top.append("ETHUSDT")
            engine.roll_over(top, _cutoff(days_ago), NOW_MS)

        assert engine.excluded == frozenset({"BTC", "SOL"})
        assert engine.is_excluded("BTCPERP")
        assert not engine.is_excluded("ETHUSDT")

    def test_variants_count_once_per_day(self, engine: ExclusionEngine) -> None:
        for days_ago in range(1, 5):
            engine.roll_over(["BTCUSDT", "BTCPERP", "1000BTCUSDT"], _cutoff(days_ago), NOW_MS)
        assert "BTC" not in engine.excluded

    def test_empty_history_excludes_nothing(self, engine: ExclusionEngine) -> None:
        assert engine.recompute() == frozenset()


class TestRollOver:
    """Tests for daily append, pruning and dedupe."""

    def test_same_day_not_duplicated(self, engine: ExclusionEngine) -> None:
        assert engine.roll_over(["BTCUSDT"], _cutoff(1), NOW_MS) is True
        assert engine.roll_over(["ETHUSDT"], _cutoff(1), NOW_MS + 300_000) is False

        assert len(engine.history) == 1
        assert engine.history[0].top_symbols == ("BTCUSDT",)

    def test_history_capped_at_window(self, engine: ExclusionEngine) -> None:
        for days_ago in range(1, 8):
            engine.roll_over(["BTCUSDT"], _cutoff(days_ago), NOW_MS)
        # a day later the oldest record ages out
        engine.roll_over(["BTCUSDT"], _cutoff(0), NOW_MS + DAY_MS)

        assert len(engine.history) <= 7
        assert engine.history[-1].timestamp_ms == _cutoff(0)

    def test_old_records_pruned(self, engine: ExclusionEngine) -> None:
        engine.roll_over(["BTCUSDT"], _cutoff(9), NOW_MS)
        assert engine.history == ()

    def test_history_ordered_oldest_first(self, engine: ExclusionEngine) -> None:
        engine.roll_over(["AUSDT"], _cutoff(1), NOW_MS)
        engine.roll_over(["BUSDT"], _cutoff(3), NOW_MS)
        engine.roll_over(["CUSDT"], _cutoff(2), NOW_MS)
        assert [r.top_symbols[0] for r in engine.history] == ["BUSDT", "CUSDT", "AUSDT"]

    def test_list_truncated_to_top_count(self) -> None:
        engine = ExclusionEngine(ExclusionSettings(top_count=3))
        engine.roll_over([f"S{i}USDT" for i in range(10)], _cutoff(1), NOW_MS)
        assert len(engine.history[0].top_symbols) == 3

    def test_set_rebuilt_after_prune(self, engine: ExclusionEngine) -> None:
        # BTC on days 3..7 ago, excluded today
        for days_ago in range(3, 8):
            engine.roll_over(["BTCUSDT"], _cutoff(days_ago), NOW_MS)
        assert "BTC" in engine.excluded

        # two days later the two oldest days have aged out
        later = NOW_MS + 2 * DAY_MS
        engine.roll_over(["ETHUSDT"], _cutoff(-1), later)

        assert "BTC" not in engine.excluded
        assert len(engine.history) == 4


class TestBackfill:
    """Tests for the startup backfill."""

    @pytest.fixture
    def instruments(self) -> dict[str, InstrumentSnapshot]:
        return {"BTCUSDT": InstrumentSnapshot("BTCUSDT", Decimal("50000"))}

    @pytest.mark.asyncio
    async def test_requests_each_completed_day(
        self, engine: ExclusionEngine, instruments: dict
    ) -> None:
        sampler = AsyncMock()
        sampler.sample_volumes.return_value = {
            "BTCUSDT": _sample("BTCUSDT", "900"),
            "ETHUSDT": _sample("ETHUSDT", "500"),
        }

        added = await engine.backfill(sampler, instruments, NOW_MS)

        assert added == 7
        cutoffs = [call.args[2] for call in sampler.sample_volumes.await_args_list]
        assert cutoffs == [_cutoff(d) for d in range(1, 8)]
        assert all(call.args[1] is Timeframe.D1 for call in sampler.sample_volumes.await_args_list)
        assert engine.excluded == frozenset({"BTC", "ETH"})

    @pytest.mark.asyncio
    async def test_empty_days_skipped(
        self, engine: ExclusionEngine, instruments: dict
    ) -> None:
        day = {"BTCUSDT": _sample("BTCUSDT", "900")}
        sampler = AsyncMock()
        sampler.sample_volumes.side_effect = [
            day,
            {},
            {},
            day,
            day,
            day,
            day,
        ]

        added = await engine.backfill(sampler, instruments, NOW_MS)

        assert added == 5
        assert len(engine.history) == 5
        assert "BTC" in engine.excluded

    @pytest.mark.asyncio
    async def test_backfill_then_rollover_skips_recorded_day(
        self, engine: ExclusionEngine, instruments: dict
    ) -> None:
        sampler = AsyncMock()
        sampler.sample_volumes.return_value = {"BTCUSDT": _sample("BTCUSDT", "900")}
        await engine.backfill(sampler, instruments, NOW_MS)

        assert engine.roll_over(["ETHUSDT"], _cutoff(1), NOW_MS) is False
        assert len(engine.history) == 7

    @pytest.mark.asyncio
    async def test_day_where_every_request_failed_skipped(
        self, engine: ExclusionEngine, mock_client: AsyncMock
    ) -> None:
        instruments = {
            s: InstrumentSnapshot(s, Decimal("1")) for s in ("BTCUSDT", "ETHUSDT")
        }

        async def klines(symbol: str, interval: str, limit: int, end_ms: int | None = None):
            if end_ms == _cutoff(2):
                raise ccxt_async.NetworkError("down")
            return make_kline_rows(limit, "1", "1", turnover="100")

        mock_client.fetch_klines.side_effect = klines
        sampler = HistoricalSampler(mock_client, SamplerSettings(volume_batch_delay=0.0))

        added = await engine.backfill(sampler, instruments, NOW_MS)

        assert added == 6
        recorded_days = {r.timestamp_ms for r in engine.history}
        assert _cutoff(2) not in recorded_days
        assert _cutoff(1) in recorded_days
