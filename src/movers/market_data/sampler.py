"""Batched historical candle sampler.

Fetches one candle window per symbol across the whole instrument universe
(several hundred contracts) without bursting the upstream API:

- symbols are split into fixed-size batches;
- every request in a batch runs concurrently (the batch size is the
  concurrency bound);
- a fixed pause separates consecutive batches.

A failed symbol (network error, timeout, malformed payload, too few
candles) simply yields no sample. It is never retried and never aborts
the batch or the cycle; the next scheduled refresh tries again.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from decimal import Decimal

import ccxt.async_support as ccxt_async

from movers.config import SamplerSettings
from movers.exceptions import InsufficientDataError, MarketDataError
from movers.exchange.client import MarketDataClient
from movers.logging import get_logger
from movers.market_data.candles import parse_klines, summarize_window
from movers.market_data.timeframes import CandleWindow, Timeframe
from movers.models import HistoricalSample, InstrumentSnapshot

logger = get_logger(__name__)

# Failures that only cost the one sample
_SAMPLE_ERRORS = (ccxt_async.BaseError, asyncio.TimeoutError, MarketDataError)

SampleFn = Callable[[str], Awaitable[HistoricalSample]]


class HistoricalSampler:
    """Produces HistoricalSample values per symbol under batch rate limits.

    Args:
        client: Upstream market-data client.
        settings: Batch sizes and inter-batch delays.
    """

    def __init__(self, client: MarketDataClient, settings: SamplerSettings) -> None:
        self._client = client
        self._settings = settings

    async def sample_price_changes(
        self, symbols: Iterable[str], timeframe: Timeframe
    ) -> dict[str, HistoricalSample]:
        """Sample the trailing change window for every symbol.

        Uses the gainers batch shape (30 per batch, 100ms apart by default).
        """
        window = timeframe.change_window

        async def fetch(symbol: str) -> HistoricalSample:
            return await self.sample_window(symbol, window)

        return await self._run_batched(
            symbols,
            fetch,
            batch_size=self._settings.change_batch_size,
            delay=self._settings.change_batch_delay,
            purpose=f"change_{timeframe.value}",
        )

    async def sample_volumes(
        self,
        instruments: Mapping[str, InstrumentSnapshot],
        timeframe: Timeframe,
        end_ms: int | None = None,
    ) -> dict[str, HistoricalSample]:
        """Sample timeframe turnover and price change for every instrument.

        With ``end_ms`` the window ends at that cutoff; for 1d this is a
        single daily candle. Without a cutoff, 1d is read straight from the
        ticker's 24h turnover and change and costs no requests.

        Samples with no turnover are dropped.
        """
        if timeframe is Timeframe.D1 and end_ms is None:
            samples = {
                symbol: _sample_from_ticker(snapshot)
                for symbol, snapshot in instruments.items()
            }
        else:
            window = timeframe.volume_window

            async def fetch(symbol: str) -> HistoricalSample:
                return await self.sample_window(symbol, window, end_ms)

            samples = await self._run_batched(
                instruments.keys(),
                fetch,
                batch_size=self._settings.volume_batch_size,
                delay=self._settings.volume_batch_delay,
                purpose=f"volume_{timeframe.value}",
            )

        return {
            symbol: sample
            for symbol, sample in samples.items()
            if sample.timeframe_volume > 0
        }

    async def sample_window(
        self, symbol: str, window: CandleWindow, end_ms: int | None = None
    ) -> HistoricalSample:
        """Fetch and reduce one candle window.

        Raises:
            InsufficientDataError: If fewer than ``window.limit`` candles came back.
            MarketDataError: If the payload is malformed.
        """
        rows = await self._client.fetch_klines(symbol, window.interval, window.limit, end_ms)
        candles = parse_klines(rows)
        if len(candles) < window.limit:
            raise InsufficientDataError(
                f"{symbol}: {len(candles)} candles, need {window.limit}"
            )
        return summarize_window(symbol, candles)

    async def _run_batched(
        self,
        symbols: Iterable[str],
        fetch: SampleFn,
        batch_size: int,
        delay: float,
        purpose: str,
    ) -> dict[str, HistoricalSample]:
        """Fan out ``fetch`` over symbols batch by batch and collect successes."""
        pending = list(symbols)
        samples: dict[str, HistoricalSample] = {}
        failed = 0
        batch_size = max(1, batch_size)

        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            results = await asyncio.gather(*(self._guarded(fetch, s) for s in batch))
            for sample in results:
                if sample is None:
                    failed += 1
                else:
                    samples[sample.symbol] = sample

            if start + batch_size < len(pending):
                await asyncio.sleep(delay)

        logger.debug(
            "sampling_complete",
            purpose=purpose,
            requested=len(pending),
            sampled=len(samples),
            failed=failed,
        )
        return samples

    @staticmethod
    async def _guarded(fetch: SampleFn, symbol: str) -> HistoricalSample | None:
        try:
            return await fetch(symbol)
        except _SAMPLE_ERRORS as e:
            logger.debug("sample_failed", symbol=symbol, error=str(e))
            return None


def _sample_from_ticker(snapshot: InstrumentSnapshot) -> HistoricalSample:
    """Rolling 24h sample taken from the ticker itself."""
    change = snapshot.price_change_24h_pct
    divisor = Decimal("100") + change
    reference = snapshot.last_price * 100 / divisor if divisor != 0 else Decimal("0")
    return HistoricalSample(
        symbol=snapshot.symbol,
        reference_price=reference,
        close_price=snapshot.last_price,
        timeframe_volume=snapshot.turnover_24h,
        price_change_pct=change,
    )
