"""Custom exceptions for the market movers engine.

Upstream-data and cache-access exceptions live here to avoid circular
imports between the exchange, sampler and store modules.
"""


class MoversError(Exception):
    """Base exception for all market movers errors."""


class MarketDataError(MoversError):
    """Raised when an upstream response is missing fields or cannot be parsed."""


class InsufficientDataError(MarketDataError):
    """Raised when fewer candles came back than the timeframe requires."""


class SectionNotReadyError(MoversError):
    """Raised when a cache section is read before its first successful refresh."""

    def __init__(self, section: str) -> None:
        super().__init__(f"{section} rankings are still loading")
        self.section = section
