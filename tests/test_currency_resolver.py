"""Tests for currency code resolution."""

import pytest

from trade_importer.models.currency import Currency
from trade_importer.processing.currency_resolver import (
    CurrencyResolver,
    UnknownCurrencyError,
    build_currency_table,
)


class TestCurrencyResolver:
    """Tests for CurrencyResolver."""

    def test_resolves_known_codes_case_insensitively(self) -> None:
        """Test lookup of built-in fiat and crypto codes."""
        resolver = CurrencyResolver()

        assert resolver.resolve("btc") == Currency("BTC", is_fiat=False)
        assert resolver.resolve(" EUR ") == Currency("EUR", is_fiat=True)

    def test_exchange_override(self) -> None:
        """Test that an exchange alias resolves to the canonical currency."""
        resolver = CurrencyResolver.for_exchange("anycoin")

        assert resolver.resolve("XDG") == Currency("DOGE")
        assert resolver.resolve("DOGE") == Currency("DOGE")

    def test_override_is_exchange_specific(self) -> None:
        """Test that aliases of one exchange do not leak into another."""
        assert CurrencyResolver.for_exchange("kraken").resolve("XBT") == Currency("BTC")
        assert not CurrencyResolver.for_exchange("bittrex").is_known("XBT")

    @pytest.mark.parametrize("code", ["XYZ", "", "   ", None])
    def test_unknown_code_raises(self, code: str | None) -> None:
        """Test that unknown or empty codes are rejected."""
        with pytest.raises(UnknownCurrencyError) as exc_info:
            CurrencyResolver().resolve(code)

        assert exc_info.value.code == code
        assert isinstance(exc_info.value, ValueError)

    def test_extra_currencies_extend_table(self) -> None:
        """Test configured currencies are resolvable and can override flags."""
        table = build_currency_table(extra={"pepe": False, "USDT": True})
        resolver = CurrencyResolver(currencies=table)

        assert resolver.resolve("PEPE") == Currency("PEPE")
        assert resolver.resolve("USDT").is_fiat

    def test_table_is_read_only(self) -> None:
        """Test the built table cannot be mutated."""
        table = build_currency_table()

        with pytest.raises(TypeError):
            table["NEW"] = Currency("NEW")  # type: ignore[index]
