"""Full-universe ticker snapshot.

One request per cycle returns price, 24h volume, 24h turnover, 24h change
and funding rate for every linear contract. Several contracts can track
the same underlying (BTCUSDT, BTCPERP, BTC-26DEC25...); for price ranking
only the most liquid one per base asset is kept.
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from movers.exceptions import MarketDataError
from movers.exchange.client import MarketDataClient
from movers.exchange.instruments import base_asset
from movers.logging import get_logger
from movers.models import InstrumentSnapshot, UniverseSnapshot, frozen_mapping

logger = get_logger(__name__)


def to_decimal(raw: object, field_name: str) -> Decimal:
    """Convert an exchange string/number to Decimal.

    Raises:
        MarketDataError: If the value is missing or not numeric.
    """
    if raw is None or raw == "":
        raise MarketDataError(f"{field_name} is missing")
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError) as e:
        raise MarketDataError(f"{field_name}={raw!r} is not numeric") from e
    if not value.is_finite():
        raise MarketDataError(f"{field_name}={raw!r} is not finite")
    return value


def _optional_decimal(raw: object, field_name: str) -> Decimal | None:
    if raw is None or raw == "":
        return None
    return to_decimal(raw, field_name)


def parse_ticker(row: dict) -> InstrumentSnapshot | None:
    """Build an InstrumentSnapshot from a raw ticker row.

    Returns None for rows without a symbol or last price (pre-launch and
    delisting contracts report an empty lastPrice).

    Raises:
        MarketDataError: If a present numeric field is malformed.
    """
    symbol = row.get("symbol")
    last_price_raw = row.get("lastPrice")
    if not symbol or not last_price_raw:
        return None

    change_fraction = _optional_decimal(row.get("price24hPcnt"), "price24hPcnt")

    return InstrumentSnapshot(
        symbol=symbol,
        last_price=to_decimal(last_price_raw, "lastPrice"),
        volume_24h=_optional_decimal(row.get("volume24h"), "volume24h") or Decimal("0"),
        turnover_24h=_optional_decimal(row.get("turnover24h"), "turnover24h") or Decimal("0"),
        price_change_24h_pct=(change_fraction or Decimal("0")) * 100,
        funding_rate=_optional_decimal(row.get("fundingRate"), "fundingRate"),
    )


def collapse_by_base_asset(
    snapshots: Iterable[InstrumentSnapshot],
) -> dict[str, InstrumentSnapshot]:
    """Keep the highest 24h-volume contract per base asset.

    Returns a mapping of base asset -> winning snapshot. On equal volume the
    first contract seen wins.
    """
    best: dict[str, InstrumentSnapshot] = {}
    for snapshot in snapshots:
        base = base_asset(snapshot.symbol)
        current = best.get(base)
        if current is None or snapshot.volume_24h > current.volume_24h:
            best[base] = snapshot
    return best


class SnapshotFetcher:
    """Pulls and normalizes the full linear ticker list.

    Transport and envelope errors propagate: the calling refresh cycle
    aborts and the previously committed rankings stay in place.
    """

    def __init__(self, client: MarketDataClient) -> None:
        self._client = client

    async def fetch_universe(self) -> UniverseSnapshot:
        """Fetch all tickers and derive the collapsed price map."""
        rows = await self._client.fetch_linear_tickers()

        instruments: dict[str, InstrumentSnapshot] = {}
        malformed = 0
        for row in rows:
            try:
                snapshot = parse_ticker(row)
            except MarketDataError as e:
                malformed += 1
                logger.warning("malformed_ticker_row", symbol=row.get("symbol"), error=str(e))
                continue
            if snapshot is not None:
                instruments[snapshot.symbol] = snapshot

        collapsed = collapse_by_base_asset(instruments.values())
        collapsed_prices = {s.symbol: s.last_price for s in collapsed.values()}

        logger.debug(
            "universe_fetched",
            rows=len(rows),
            instruments=len(instruments),
            base_assets=len(collapsed_prices),
            malformed=malformed,
        )
        return UniverseSnapshot(
            instruments=frozen_mapping(instruments),
            collapsed_prices=frozen_mapping(collapsed_prices),
        )
