"""Resolution of exchange currency codes to canonical currencies."""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from trade_importer.models.currency import Currency
from trade_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


class UnknownCurrencyError(ValueError):
    """Raised when a currency code has no canonical counterpart."""

    def __init__(self, code: Optional[str]):
        self.code = code
        super().__init__(f"Unrecognized currency code: {code!r}")


FIAT_CODES = (
    "AUD", "BRL", "CAD", "CHF", "CNY", "CZK", "DKK", "EUR", "GBP", "HKD",
    "HUF", "JPY", "KRW", "MXN", "NOK", "NZD", "PLN", "RUB", "SEK", "SGD",
    "TRY", "UAH", "USD", "ZAR",
)

CRYPTO_CODES = (
    "AAVE", "ADA", "ALGO", "ATOM", "AVAX", "BAT", "BCH", "BNB", "BSV", "BTC",
    "BUSD", "DAI", "DASH", "DOGE", "DOT", "EOS", "ETC", "ETH", "FIL", "LINK",
    "LTC", "MATIC", "NEO", "OMG", "SHIB", "SOL", "TRX", "UNI", "USDC", "USDT",
    "XLM", "XMR", "XRP", "XTZ", "ZEC", "ZRX",
)

# Per-exchange code overrides (exchange code -> canonical code)
DEFAULT_OVERRIDES: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "anycoin": MappingProxyType({"XDG": "DOGE"}),
    "kraken": MappingProxyType({"XBT": "BTC", "XDG": "DOGE"}),
})


def build_currency_table(
    fiat_codes: Iterable[str] = FIAT_CODES,
    crypto_codes: Iterable[str] = CRYPTO_CODES,
    extra: Optional[Mapping[str, bool]] = None,
) -> Mapping[str, Currency]:
    """Build an immutable code -> Currency table.

    Args:
        fiat_codes: Codes of fiat currencies.
        crypto_codes: Codes of crypto currencies.
        extra: Additional codes mapped to their fiat flag; these win over
            the built-in lists.

    Returns:
        Read-only mapping keyed by upper-case code.
    """
    table: dict[str, Currency] = {}
    for code in crypto_codes:
        table[code.upper()] = Currency(code.upper(), is_fiat=False)
    for code in fiat_codes:
        table[code.upper()] = Currency(code.upper(), is_fiat=True)
    for code, is_fiat in (extra or {}).items():
        table[code.upper()] = Currency(code.upper(), is_fiat=bool(is_fiat))
    return MappingProxyType(table)


class CurrencyResolver:
    """Maps exchange-specific currency codes to canonical currencies.

    Both the currency table and the override table are fixed at construction
    and never mutated, so one resolver can be shared between connectors.
    """

    def __init__(
        self,
        currencies: Optional[Mapping[str, Currency]] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ):
        """Initialize resolver.

        Args:
            currencies: Canonical code -> Currency table (default built-ins).
            overrides: Exchange code -> canonical code, applied first.
        """
        self._currencies = currencies if currencies is not None else build_currency_table()
        self._overrides = MappingProxyType(
            {k.strip().upper(): v.strip().upper() for k, v in (overrides or {}).items()}
        )

    @classmethod
    def for_exchange(
        cls,
        exchange: str,
        currencies: Optional[Mapping[str, Currency]] = None,
        overrides: Optional[Mapping[str, Mapping[str, str]]] = None,
    ) -> "CurrencyResolver":
        """Create a resolver using the override table of one exchange.

        Args:
            exchange: Exchange id (e.g., "anycoin").
            currencies: Optional currency table.
            overrides: Per-exchange override tables (default built-ins).

        Returns:
            Resolver for that exchange.
        """
        tables = overrides if overrides is not None else DEFAULT_OVERRIDES
        return cls(currencies=currencies, overrides=tables.get(exchange.lower(), {}))

    def resolve(self, code: Optional[str]) -> Currency:
        """Resolve an exchange code to a canonical currency.

        Args:
            code: Exchange currency code (case-insensitive).

        Returns:
            The canonical Currency.

        Raises:
            UnknownCurrencyError: If the code is empty or unknown.
        """
        if code is None or not code.strip():
            raise UnknownCurrencyError(code)

        normalized = code.strip().upper()
        canonical = self._overrides.get(normalized, normalized)
        currency = self._currencies.get(canonical)
        if currency is None:
            logger.debug(f"Currency code not recognized: {code!r}")
            raise UnknownCurrencyError(code)
        return currency

    def is_known(self, code: Optional[str]) -> bool:
        try:
            self.resolve(code)
        except UnknownCurrencyError:
            return False
        return True
