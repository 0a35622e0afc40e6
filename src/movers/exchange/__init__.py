"""Exchange client layer -- Bybit public market data via ccxt."""

from movers.exchange.bybit_client import BybitClient
from movers.exchange.client import MarketDataClient
from movers.exchange.instruments import (
    ContractKind,
    ParsedInstrument,
    base_asset,
    is_usdt_perpetual,
    parse_instrument,
)

__all__ = [
    "BybitClient",
    "ContractKind",
    "MarketDataClient",
    "ParsedInstrument",
    "base_asset",
    "is_usdt_perpetual",
    "parse_instrument",
]
