"""Bybit public market-data client via ccxt async.

Uses ccxt's implicit v5 REST endpoints rather than the unified
fetch_tickers/fetch_ohlcv: the rankings need raw Bybit symbols, candle
turnover (quote volume) and the ticker's 24h turnover and change fields,
all of which the unified parsers drop or rename.
"""

import ccxt.async_support as ccxt_async

from movers.config import ExchangeSettings
from movers.exceptions import MarketDataError
from movers.exchange.client import MarketDataClient
from movers.logging import get_logger

logger = get_logger(__name__)

_CATEGORY = "linear"


class BybitClient(MarketDataClient):
    """Concrete Bybit market-data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        config: dict = {
            "enableRateLimit": settings.enable_rate_limit,
            "timeout": settings.timeout_ms,
            "options": {
                "defaultType": "swap",
            },
        }

        self._exchange = ccxt_async.bybit(config)
        if settings.testnet:
            self._exchange.set_sandbox_mode(True)

    @property
    def exchange(self) -> ccxt_async.bybit:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Verify connectivity by reading the exchange server time."""
        logger.info("connecting_to_bybit", testnet=self._settings.testnet)
        server_time = await self._exchange.fetch_time()
        logger.info("bybit_connected", server_time=server_time)

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_bybit_connection")
        await self._exchange.close()
        logger.info("bybit_connection_closed")

    async def fetch_linear_tickers(self) -> list[dict]:
        """Fetch the full linear ticker list in a single request."""
        response = await self._exchange.public_get_v5_market_tickers(
            {"category": _CATEGORY}
        )
        return _result_list(response, "tickers")

    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        limit: int,
        end_ms: int | None = None,
    ) -> list[list[str]]:
        """Fetch raw kline rows for one symbol (newest first, as Bybit returns them)."""
        request: dict = {
            "category": _CATEGORY,
            "symbol": symbol,
            "interval": interval,
            "limit": limit,
        }
        if end_ms is not None:
            request["end"] = end_ms
        response = await self._exchange.public_get_v5_market_kline(request)
        return _result_list(response, "kline")


def _result_list(response: dict, endpoint: str) -> list:
    """Extract ``result.list`` from a Bybit v5 envelope.

    Raises:
        MarketDataError: If the envelope reports an error or has no list.
    """
    if not isinstance(response, dict):
        raise MarketDataError(f"{endpoint}: unexpected response type {type(response).__name__}")

    ret_code = str(response.get("retCode", "0"))
    if ret_code != "0":
        raise MarketDataError(
            f"{endpoint}: retCode={ret_code} retMsg={response.get('retMsg')}"
        )

    result = response.get("result") or {}
    if not isinstance(result, dict):
        raise MarketDataError(f"{endpoint}: result is {type(result).__name__}")
    rows = result.get("list")
    if not isinstance(rows, list):
        raise MarketDataError(f"{endpoint}: response has no result.list")
    return rows
