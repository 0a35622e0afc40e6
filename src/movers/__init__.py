"""Bybit market movers: multi-timeframe gainers, volume and funding rankings."""

__version__ = "0.1.0"
