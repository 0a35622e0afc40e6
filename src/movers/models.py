"""Shared data models for the market movers engine.

CRITICAL: All prices, volumes, rates and percentages use Decimal. Never use
float for monetary values.

Every model is frozen: ranking tables and cache sections are shared with
readers without copying, so nothing handed out may be mutated afterwards.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class InstrumentSnapshot:
    """Current ticker state for one contract, refreshed every cycle."""

    symbol: str
    last_price: Decimal
    volume_24h: Decimal = Decimal("0")  # base-asset quantity
    turnover_24h: Decimal = Decimal("0")  # quote-currency value
    price_change_24h_pct: Decimal = Decimal("0")
    funding_rate: Decimal | None = None


@dataclass(frozen=True)
class UniverseSnapshot:
    """One full-universe ticker pull.

    ``instruments`` holds every contract; ``collapsed_prices`` holds the
    single highest-volume contract per base asset.
    """

    instruments: Mapping[str, InstrumentSnapshot]
    collapsed_prices: Mapping[str, Decimal]
    fetched_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Candle:
    """A single kline row."""

    start_ms: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    turnover: Decimal


@dataclass(frozen=True)
class HistoricalSample:
    """Reduction of one symbol's candle window."""

    symbol: str
    reference_price: Decimal  # oldest candle open
    close_price: Decimal  # newest candle close
    timeframe_volume: Decimal  # summed turnover
    price_change_pct: Decimal  # reference -> close


@dataclass(frozen=True)
class GainerEntry:
    """Row of a gainers/losers table."""

    symbol: str
    current_price: Decimal
    change_percent: Decimal


@dataclass(frozen=True)
class VolumeEntry:
    """Row of a volume-gaining/losing table."""

    symbol: str
    last_price: Decimal
    timeframe_volume: Decimal
    volume_24h: Decimal
    price_change: Decimal


@dataclass(frozen=True)
class FundingEntry:
    """Row of a funding-positive/negative table."""

    symbol: str
    funding_rate: Decimal
    funding_rate_pct: Decimal
    last_price: Decimal


@dataclass(frozen=True)
class VolumeHistoryRecord:
    """Daily top-by-volume symbols for one UTC day."""

    timestamp_ms: int
    top_symbols: tuple[str, ...]


@dataclass(frozen=True)
class MoverTable:
    """Gainers and losers for one timeframe."""

    top_gainers: tuple[GainerEntry, ...] = ()
    top_losers: tuple[GainerEntry, ...] = ()


@dataclass(frozen=True)
class VolumeTable:
    """Volume + price-direction leaders for one timeframe."""

    top_gaining: tuple[VolumeEntry, ...] = ()
    top_losing: tuple[VolumeEntry, ...] = ()
    excluded_count: int = 0


@dataclass(frozen=True)
class GainersSection:
    """Committed gainers/losers tables for every timeframe."""

    tables: Mapping[str, MoverTable]
    updated_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class VolumeSection:
    """Committed volume tables for every timeframe plus the exclusions applied."""

    tables: Mapping[str, VolumeTable]
    excluded: frozenset[str] = frozenset()
    updated_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class FundingSection:
    """Committed funding extremes."""

    top_positive: tuple[FundingEntry, ...] = ()
    top_negative: tuple[FundingEntry, ...] = ()
    updated_at: float = field(default_factory=time.time)


def frozen_mapping(data: dict) -> Mapping:
    """Wrap a freshly built dict in a read-only view."""
    return MappingProxyType(dict(data))
