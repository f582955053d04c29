"""Exchange trade client backed by the ccxt library."""

import dataclasses
from typing import Any, Mapping, Optional

from trade_importer.clients.base import BaseTradeClient, FetchError
from trade_importer.models.transaction import FetchedTrade, MalformedTrade, RawTradeRecord, TransactionKind
from trade_importer.processing.classifier import count_unit_price
from trade_importer.utils.date_utils import parse_timestamp
from trade_importer.utils.decimal_utils import parse_decimal
from trade_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

_SIDES = {"buy": TransactionKind.BUY, "sell": TransactionKind.SELL}


def trade_from_ccxt(trade: Mapping[str, Any]) -> RawTradeRecord:
    """Map a ccxt unified trade structure to a RawTradeRecord.

    Unknown sides are passed through as raw kind tags so that the classifier
    reports them as row errors instead of aborting the page.

    Raises:
        ValueError: If the amount is missing or the timestamp or an amount
            cannot be parsed.
    """
    symbol = str(trade.get("symbol") or "")
    # Derivative symbols carry the settle currency after a colon: BTC/USDT:USDT
    pair = symbol.split(":", 1)[0]
    base_code, _, quote_code = pair.partition("/")

    side = str(trade.get("side") or "")
    kind: "TransactionKind | str" = _SIDES.get(side.lower(), side)

    fee = trade.get("fee") or {}
    timestamp = trade.get("timestamp")
    if timestamp is None:
        timestamp = trade.get("datetime")

    volume = parse_decimal(trade.get("amount"))
    if volume is None:
        raise ValueError("Missing amount")

    record = RawTradeRecord(
        id=str(trade["id"]) if trade.get("id") is not None else None,
        timestamp=parse_timestamp(timestamp),
        base_code=base_code,
        quote_code=quote_code or None,
        kind=kind,
        volume=volume,
        unit_price=parse_decimal(trade.get("price")),
        quote_amount=parse_decimal(trade.get("cost")),
        fee_amount=parse_decimal(fee.get("cost")),
        fee_code=fee.get("currency"),
    )
    if record.unit_price is None and record.quote_amount is not None:
        record = dataclasses.replace(record, unit_price=count_unit_price(record))
    return record


class CcxtTradeClient(BaseTradeClient):
    """Downloads the account's trade history through ccxt.

    The ccxt exchange instance is created lazily on the first fetch.
    """

    def __init__(
        self,
        exchange_id: str,
        api_key: str,
        api_secret: str,
        symbol: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        """Initialize client.

        Args:
            exchange_id: ccxt exchange id (e.g., "bittrex", "kraken").
            api_key: API key.
            api_secret: API secret.
            symbol: Optional market symbol to restrict the history to.
            limit: Optional maximum number of trades per page.
        """
        self.exchange_id = exchange_id
        self.api_key = api_key
        self.api_secret = api_secret
        self.symbol = symbol
        self.limit = limit
        self._exchange: Any = None

    @property
    def name(self) -> str:
        return f"{self.__class__.__name__}({self.exchange_id})"

    def _ensure_exchange(self) -> Any:
        """Lazily create the ccxt exchange instance."""
        if self._exchange is not None:
            return self._exchange

        try:
            import ccxt
        except ImportError as err:
            raise FetchError(
                "ccxt package not installed. Run: pip install ccxt",
                source=self.exchange_id,
            ) from err

        exchange_class = getattr(ccxt, self.exchange_id, None)
        if exchange_class is None:
            raise FetchError(f"Exchange not supported by ccxt: {self.exchange_id}", source=self.exchange_id)

        self._exchange = exchange_class({
            "apiKey": self.api_key,
            "secret": self.api_secret,
            "enableRateLimit": True,
        })
        logger.info(f"Created ccxt exchange: {self.exchange_id}")
        return self._exchange

    def fetch_trades(self) -> list[FetchedTrade]:
        exchange = self._ensure_exchange()
        try:
            trades = exchange.fetch_my_trades(symbol=self.symbol, limit=self.limit)
        except Exception as e:
            raise FetchError("User trade history download failed.", source=self.exchange_id) from e

        records: list[FetchedTrade] = []
        for trade in trades:
            try:
                records.append(trade_from_ccxt(trade))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Malformed trade payload from {self.exchange_id}: {e!r}")
                records.append(MalformedTrade.from_payload(trade, e))

        logger.info(f"Downloaded {len(records)} trades from {self.exchange_id}")
        return records

    def close(self) -> None:
        self._exchange = None
