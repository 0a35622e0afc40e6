"""Tests for contract symbol parsing."""

import pytest

from movers.exchange.instruments import (
    ContractKind,
    base_asset,
    is_usdt_perpetual,
    parse_instrument,
)


class TestParseInstrument:
    """Tests for parse_instrument edge cases."""

    def test_usdt_perpetual(self) -> None:
        parsed = parse_instrument("BTCUSDT")
        assert parsed.base_asset == "BTC"
        assert parsed.quote_asset == "USDT"
        assert parsed.contract_kind is ContractKind.PERPETUAL
        assert parsed.multiplier == 1

    def test_usdc_perp_suffix(self) -> None:
        parsed = parse_instrument("ETHPERP")
        assert parsed.base_asset == "ETH"
        assert parsed.quote_asset == "USDC"
        assert parsed.contract_kind is ContractKind.PERPETUAL

    def test_usdc_suffix(self) -> None:
        parsed = parse_instrument("SOLUSDC")
        assert parsed.base_asset == "SOL"
        assert parsed.quote_asset == "USDC"

    def test_thousand_multiplier_prefix(self) -> None:
        parsed = parse_instrument("1000PEPEUSDT")
        assert parsed.base_asset == "PEPE"
        assert parsed.multiplier == 1000

    def test_larger_multiplier_prefixes(self) -> None:
        assert parse_instrument("10000SATSUSDT").base_asset == "SATS"
        assert parse_instrument("10000SATSUSDT").multiplier == 10000
        assert parse_instrument("1000000MOGUSDT").base_asset == "MOG"

    def test_leading_digit_that_is_not_a_multiplier(self) -> None:
        assert parse_instrument("1INCHUSDT").base_asset == "1INCH"
        assert parse_instrument("1INCHUSDT").multiplier == 1

    def test_dated_usdt_future(self) -> None:
        parsed = parse_instrument("ETHUSDT-27MAR26")
        assert parsed.base_asset == "ETH"
        assert parsed.quote_asset == "USDT"
        assert parsed.contract_kind is ContractKind.DATED_FUTURE

    def test_dated_usdc_future_without_suffix(self) -> None:
        parsed = parse_instrument("BTC-26DEC25")
        assert parsed.base_asset == "BTC"
        assert parsed.quote_asset == "USDC"
        assert parsed.contract_kind is ContractKind.DATED_FUTURE

    def test_variant_tags_ignored(self) -> None:
        assert base_asset("BTCUSDT-PERP-A") == "BTC"
        assert base_asset("BTCUSDT-PERP-B") == "BTC"
        assert parse_instrument("BTCUSDT-PERP-A").contract_kind is ContractKind.PERPETUAL

    def test_symbol_that_is_only_a_suffix(self) -> None:
        assert base_asset("USDT") == "USDT"

    def test_stablecoin_base(self) -> None:
        assert base_asset("USDCUSDT") == "USDC"

    def test_case_and_whitespace_normalized(self) -> None:
        parsed = parse_instrument("  btcusdt ")
        assert parsed.symbol == "BTCUSDT"
        assert parsed.base_asset == "BTC"

    def test_empty_symbol_raises(self) -> None:
        with pytest.raises(ValueError, match="Empty"):
            parse_instrument("   ")


class TestIsUsdtPerpetual:
    """Tests for the volume-ranking universe filter."""

    @pytest.mark.parametrize(
        "symbol, expected",
        [
            ("BTCUSDT", True),
            ("1000PEPEUSDT", True),
            ("BTCPERP", False),
            ("SOLUSDC", False),
            ("ETHUSDT-27MAR26", False),
            ("BTC-26DEC25", False),
        ],
    )
    def test_filter(self, symbol: str, expected: bool) -> None:
        assert is_usdt_perpetual(symbol) is expected
