"""Abstract market-data client interface.

Defines the contract for upstream market-data sources. The fetcher and
sampler depend only on this interface, keeping Bybit-specific details
isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod


class MarketDataClient(ABC):
    """Abstract base class for public market-data API clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the connection and verify the API is reachable."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_linear_tickers(self) -> list[dict]:
        """Return raw ticker rows for every linear contract.

        Each row carries exchange-native string fields, at least:
        symbol, lastPrice, volume24h, turnover24h, price24hPcnt, fundingRate.
        """
        ...

    @abstractmethod
    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        limit: int,
        end_ms: int | None = None,
    ) -> list[list[str]]:
        """Return raw candle rows, newest first.

        Each row is [startTime, open, high, low, close, volume, turnover].
        When end_ms is given, the newest candle is the one containing end_ms.
        """
        ...
