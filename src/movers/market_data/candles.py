"""Kline parsing and window reduction.

Bybit kline rows are ``[startTime, open, high, low, close, volume, turnover]``
strings, NEWEST FIRST. Rows are re-sorted here rather than trusting the
order, so ``candles[0]`` is always the newest and ``candles[-1]`` the oldest.
"""

from decimal import Decimal

from movers.exceptions import MarketDataError
from movers.market_data.snapshot_fetcher import to_decimal
from movers.models import Candle, HistoricalSample

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def percent_change(current: Decimal, reference: Decimal | None) -> Decimal:
    """Percent move from reference to current; 0 when reference is zero or absent."""
    if reference is None or reference == 0:
        return _ZERO
    return (current - reference) / reference * _HUNDRED


def parse_kline_row(row: list) -> Candle:
    """Parse one raw kline row.

    Raises:
        MarketDataError: If the row is short or a field is not numeric.
    """
    if not isinstance(row, (list, tuple)) or len(row) < 7:
        raise MarketDataError(f"kline row has unexpected shape: {row!r}")
    try:
        start_ms = int(row[0])
    except (TypeError, ValueError) as e:
        raise MarketDataError(f"kline startTime={row[0]!r} is not an integer") from e
    return Candle(
        start_ms=start_ms,
        open=to_decimal(row[1], "open"),
        high=to_decimal(row[2], "high"),
        low=to_decimal(row[3], "low"),
        close=to_decimal(row[4], "close"),
        volume=to_decimal(row[5], "volume"),
        turnover=to_decimal(row[6], "turnover"),
    )


def parse_klines(rows: list) -> list[Candle]:
    """Parse raw rows into candles sorted newest first."""
    candles = [parse_kline_row(row) for row in rows]
    candles.sort(key=lambda c: c.start_ms, reverse=True)
    return candles


def summarize_window(symbol: str, candles: list[Candle]) -> HistoricalSample:
    """Reduce a newest-first candle window to a HistoricalSample.

    Reference price is the oldest candle's open, close is the newest
    candle's close, and volume is the summed turnover of the window.
    """
    if not candles:
        raise MarketDataError(f"{symbol}: empty candle window")
    reference = candles[-1].open
    close = candles[0].close
    return HistoricalSample(
        symbol=symbol,
        reference_price=reference,
        close_price=close,
        timeframe_volume=sum((c.turnover for c in candles), _ZERO),
        price_change_pct=percent_change(close, reference),
    )
