"""Ranking timeframes and the candle windows that back them.

Price-change rankings compare the live price with the open of the oldest
candle in a trailing window. Volume rankings sum turnover over the last
*completed* interval, so their windows end one millisecond before the
current interval started.
"""

from dataclasses import dataclass
from enum import Enum

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


@dataclass(frozen=True)
class CandleWindow:
    """A kline request shape: Bybit interval code and candle count."""

    interval: str
    limit: int


class Timeframe(str, Enum):
    """Named ranking window."""

    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @property
    def duration_ms(self) -> int:
        return _DURATION_MS[self]

    @property
    def change_window(self) -> CandleWindow:
        """Candles used for the gainers/losers percent change."""
        return _CHANGE_WINDOWS[self]

    @property
    def volume_window(self) -> CandleWindow:
        """Candles summed for the volume rankings."""
        return _VOLUME_WINDOWS[self]

    def volume_cutoff_ms(self, now_ms: int) -> int:
        """Last millisecond of the most recently completed interval.

        For 1d this is the end of the previous UTC day.
        """
        return (now_ms // self.duration_ms) * self.duration_ms - 1


ALL_TIMEFRAMES: tuple[Timeframe, ...] = tuple(Timeframe)

_DURATION_MS: dict[Timeframe, int] = {
    Timeframe.M5: 5 * MINUTE_MS,
    Timeframe.M15: 15 * MINUTE_MS,
    Timeframe.H1: HOUR_MS,
    Timeframe.H4: 4 * HOUR_MS,
    Timeframe.D1: DAY_MS,
}

_CHANGE_WINDOWS: dict[Timeframe, CandleWindow] = {
    Timeframe.M5: CandleWindow("1", 5),
    Timeframe.M15: CandleWindow("1", 15),
    Timeframe.H1: CandleWindow("1", 60),
    Timeframe.H4: CandleWindow("15", 16),
    Timeframe.D1: CandleWindow("60", 24),
}

_VOLUME_WINDOWS: dict[Timeframe, CandleWindow] = {
    Timeframe.M5: CandleWindow("1", 5),
    Timeframe.M15: CandleWindow("5", 3),
    Timeframe.H1: CandleWindow("15", 4),
    Timeframe.H4: CandleWindow("60", 4),
    Timeframe.D1: CandleWindow("D", 1),
}


def utc_day_start_ms(timestamp_ms: int) -> int:
    """Midnight UTC of the day containing timestamp_ms."""
    return (timestamp_ms // DAY_MS) * DAY_MS


def parse_timeframe(value: str) -> Timeframe:
    """Look up a timeframe by its label (``"5m"``, ``"1d"``...).

    Raises:
        ValueError: For an unknown label.
    """
    try:
        return Timeframe(value)
    except ValueError:
        labels = ", ".join(tf.value for tf in ALL_TIMEFRAMES)
        raise ValueError(f"Unknown timeframe {value!r}; expected one of {labels}") from None
