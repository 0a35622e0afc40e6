"""Ranking computer for gainers/losers, volume movers and funding extremes.

Core formulas:
  change_percent = (current - reference) / reference * 100   (0 if reference is 0)
  gainers        = top N by change_percent
  losers         = bottom N by change_percent, most negative first
  volume movers  = top N by timeframe turnover among non-excluded
                   contracts whose price moved up (gaining) or down (losing)
  funding        = top/bottom N by raw signed funding rate, zero rates skipped
"""

from collections.abc import Mapping
from decimal import Decimal

from movers.config import RankingSettings
from movers.exchange.instruments import base_asset
from movers.market_data.candles import percent_change
from movers.models import (
    FundingEntry,
    GainerEntry,
    HistoricalSample,
    InstrumentSnapshot,
    MoverTable,
    VolumeEntry,
    VolumeTable,
)


class MarketRanker:
    """Builds immutable ranking tables from prices and historical samples.

    Args:
        settings: Table sizes.
    """

    def __init__(self, settings: RankingSettings) -> None:
        self._settings = settings

    def rank_gainers_losers(
        self,
        prices: Mapping[str, Decimal],
        samples: Mapping[str, HistoricalSample],
    ) -> MoverTable:
        """Rank symbols by percent change from their sample's reference price.

        Symbols without a sample are left out.
        """
        entries = [
            GainerEntry(
                symbol=symbol,
                current_price=price,
                change_percent=percent_change(price, samples[symbol].reference_price),
            )
            for symbol, price in prices.items()
            if symbol in samples
        ]
        entries.sort(key=lambda e: e.change_percent, reverse=True)

        top_n = self._settings.top_n
        losers = entries[-top_n:] if top_n > 0 else []
        return MoverTable(
            top_gainers=tuple(entries[:top_n]),
            top_losers=tuple(reversed(losers)),
        )

    def rank_volume(
        self,
        samples: Mapping[str, HistoricalSample],
        instruments: Mapping[str, InstrumentSnapshot],
        excluded: frozenset[str] = frozenset(),
        closed_day: bool = False,
    ) -> VolumeTable:
        """Rank symbols by timeframe turnover, split by price direction.

        Args:
            samples: Per-symbol volume samples.
            instruments: Current tickers, for last price and 24h turnover.
            excluded: Base assets to drop before slicing.
            closed_day: The samples are a completed daily candle; report the
                candle close and its own turnover instead of live ticker values.
        """
        ranked = sorted(samples.values(), key=lambda s: s.timeframe_volume, reverse=True)

        eligible: list[VolumeEntry] = []
        excluded_count = 0
        for sample in ranked:
            if base_asset(sample.symbol) in excluded:
                excluded_count += 1
                continue
            eligible.append(self._volume_entry(sample, instruments.get(sample.symbol), closed_day))

        top_n = self._settings.top_n
        return VolumeTable(
            top_gaining=tuple([e for e in eligible if e.price_change > 0][:top_n]),
            top_losing=tuple([e for e in eligible if e.price_change < 0][:top_n]),
            excluded_count=excluded_count,
        )

    def rank_funding(
        self, instruments: Mapping[str, InstrumentSnapshot]
    ) -> tuple[tuple[FundingEntry, ...], tuple[FundingEntry, ...]]:
        """Return (top_positive, top_negative) funding tables.

        Contracts without a funding rate, or with a zero rate, are skipped.
        """
        entries = [
            FundingEntry(
                symbol=snapshot.symbol,
                funding_rate=snapshot.funding_rate,
                funding_rate_pct=snapshot.funding_rate * 100,
                last_price=snapshot.last_price,
            )
            for snapshot in instruments.values()
            if snapshot.funding_rate is not None and snapshot.funding_rate != 0
        ]
        entries.sort(key=lambda e: e.funding_rate, reverse=True)

        top_n = self._settings.funding_top_n
        bottom = entries[-top_n:] if top_n > 0 else []
        return tuple(entries[:top_n]), tuple(reversed(bottom))

    @staticmethod
    def top_symbols_by_volume(
        samples: Mapping[str, HistoricalSample], count: int
    ) -> tuple[str, ...]:
        """Symbols with the highest timeframe turnover, best first."""
        ranked = sorted(samples.values(), key=lambda s: s.timeframe_volume, reverse=True)
        return tuple(s.symbol for s in ranked[:count])

    @staticmethod
    def _volume_entry(
        sample: HistoricalSample,
        snapshot: InstrumentSnapshot | None,
        closed_day: bool,
    ) -> VolumeEntry:
        if closed_day or snapshot is None:
            last_price = sample.close_price
            volume_24h = sample.timeframe_volume
        else:
            last_price = snapshot.last_price
            volume_24h = snapshot.turnover_24h
        return VolumeEntry(
            symbol=sample.symbol,
            last_price=last_price,
            timeframe_volume=sample.timeframe_volume,
            volume_24h=volume_24h,
            price_change=sample.price_change_pct,
        )
