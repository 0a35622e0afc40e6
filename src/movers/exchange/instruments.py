"""Contract symbol taxonomy for Bybit linear instruments.

Bybit encodes the underlying asset, quote/settlement currency, expiry and
a quantity multiplier in a single raw symbol string:

    BTCUSDT          USDT perpetual
    BTCPERP          USDC perpetual
    ETHUSDC          USDC perpetual (newer naming)
    ETHUSDT-27MAR26  USDT dated future
    BTC-26DEC25      USDC dated future
    1000PEPEUSDT     USDT perpetual quoted per 1000 PEPE

Everything here is pure string parsing. Rankings collapse variants onto
their base asset, and the exclusion list is keyed by base asset.
"""

import re
from dataclasses import dataclass
from enum import Enum

_DATED_SEGMENT = re.compile(r"^\d{2}[A-Z]{3}\d{2}$")
_MULTIPLIER_PREFIX = re.compile(r"^(10+)(?=[A-Z])")

# Order matters: the first matching suffix wins.
_QUOTE_SUFFIXES: tuple[tuple[str, str], ...] = (
    ("USDT", "USDT"),
    ("USDC", "USDC"),
    ("PERP", "USDC"),
)


class ContractKind(str, Enum):
    """Settlement style of a linear contract."""

    PERPETUAL = "perpetual"
    DATED_FUTURE = "dated_future"


@dataclass(frozen=True)
class ParsedInstrument:
    """Components of a raw contract symbol."""

    symbol: str
    base_asset: str
    quote_asset: str | None
    contract_kind: ContractKind
    multiplier: int = 1


def parse_instrument(raw_symbol: str) -> ParsedInstrument:
    """Split a raw contract symbol into base asset, quote asset and kind.

    Edge cases:
        - ``-`` segments that are not an expiry (``BTCUSDT-PERP-A``) are
          variant tags and do not change the base asset.
        - A symbol that is nothing but a quote suffix (``USDT``) keeps it
          as its base asset.
        - Only a power-of-ten prefix followed by a letter is a multiplier:
          ``1000PEPE`` -> ``PEPE`` but ``1INCH`` stays ``1INCH``.

    Raises:
        ValueError: If the symbol is empty.
    """
    symbol = raw_symbol.strip().upper()
    if not symbol:
        raise ValueError("Empty instrument symbol")

    head, *segments = symbol.split("-")
    kind = ContractKind.PERPETUAL
    if any(_DATED_SEGMENT.match(segment) for segment in segments):
        kind = ContractKind.DATED_FUTURE

    quote: str | None = None
    for suffix, quote_asset in _QUOTE_SUFFIXES:
        if head.endswith(suffix) and len(head) > len(suffix):
            head = head[: -len(suffix)]
            quote = quote_asset
            break

    if quote is None and kind is ContractKind.DATED_FUTURE:
        # BTC-26DEC25 style futures settle in USDC
        quote = "USDC"

    multiplier = 1
    match = _MULTIPLIER_PREFIX.match(head)
    if match:
        multiplier = int(match.group(1))
        head = head[match.end():]

    return ParsedInstrument(
        symbol=symbol,
        base_asset=head,
        quote_asset=quote,
        contract_kind=kind,
        multiplier=multiplier,
    )


def base_asset(raw_symbol: str) -> str:
    """Return the underlying asset identifier for a contract symbol."""
    return parse_instrument(raw_symbol).base_asset


def is_usdt_perpetual(raw_symbol: str) -> bool:
    """True for USDT-quoted perpetuals, the universe of the volume rankings."""
    parsed = parse_instrument(raw_symbol)
    return parsed.quote_asset == "USDT" and parsed.contract_kind is ContractKind.PERPETUAL
