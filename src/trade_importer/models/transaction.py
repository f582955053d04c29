"""Transaction data models for exchange trade records."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional

from trade_importer.models.currency import Currency
from trade_importer.utils.date_utils import parse_timestamp
from trade_importer.utils.decimal_utils import parse_decimal

# Suffixes appended to the primary id for derived sub-transactions
FEE_UID_PART = "-fee"
REBATE_UID_PART = "-rebate"


class TransactionKind(Enum):
    """Closed set of transaction kinds an exchange record can carry."""

    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    REWARD = "REWARD"
    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"
    STAKING_REWARD = "STAKING_REWARD"
    EARNING = "EARNING"
    FORK = "FORK"
    AIRDROP = "AIRDROP"
    FEE = "FEE"
    REBATE = "REBATE"

    @classmethod
    def parse(cls, tag: "TransactionKind | str") -> "TransactionKind":
        """Parse a kind tag (case-insensitive, dashes or spaces allowed).

        Raises:
            ValueError: If the tag is not one of the known kinds.
        """
        if isinstance(tag, cls):
            return tag
        normalized = str(tag).strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown transaction kind: {tag!r}") from None


@dataclass(frozen=True)
class RawTradeRecord:
    """Trade or transfer event as reported by an exchange.

    This is what an exchange client hands over before classification.
    Currency fields hold exchange-specific codes, not resolved currencies.

    Attributes:
        id: Exchange-assigned unique id.
        timestamp: Execution time (aware UTC).
        base_code: Base currency code.
        kind: Transaction kind tag (TransactionKind or its raw string form).
        volume: Traded / transferred quantity of the base currency.
        quote_code: Quote currency code (required for buys and sells).
        unit_price: Price of one base unit in the quote currency.
        quote_amount: Total amount in the quote currency.
        fee_amount: Fee charged for the event.
        fee_code: Currency code the fee was charged in.
        rebate_amount: Rebate paid back for the event.
        rebate_code: Currency code of the rebate.
        note: Free-text note.
        address: Wallet address for transfers.
    """

    id: Optional[str]
    timestamp: datetime
    base_code: str
    kind: "TransactionKind | str"
    volume: Decimal
    quote_code: Optional[str] = None
    unit_price: Optional[Decimal] = None
    quote_amount: Optional[Decimal] = None
    fee_amount: Optional[Decimal] = None
    fee_code: Optional[str] = None
    rebate_amount: Optional[Decimal] = None
    rebate_code: Optional[str] = None
    note: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "RawTradeRecord":
        """Create a RawTradeRecord from a plain mapping (e.g., JSON input).

        Recognized keys: id, timestamp, base, quote, kind, volume, unit_price,
        quote_amount, fee_amount, fee_currency, rebate_amount,
        rebate_currency, note, address.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If a timestamp or amount cannot be parsed.
        """
        volume = parse_decimal(data["volume"])
        if volume is None:
            raise ValueError("Missing volume")

        return cls(
            id=_optional_str(data.get("id")),
            timestamp=parse_timestamp(data["timestamp"]),
            base_code=str(data["base"]),
            kind=str(data["kind"]),
            volume=volume,
            quote_code=_optional_str(data.get("quote")),
            unit_price=parse_decimal(data.get("unit_price")),
            quote_amount=parse_decimal(data.get("quote_amount")),
            fee_amount=parse_decimal(data.get("fee_amount")),
            fee_code=_optional_str(data.get("fee_currency")),
            rebate_amount=parse_decimal(data.get("rebate_amount")),
            rebate_code=_optional_str(data.get("rebate_currency")),
            note=_optional_str(data.get("note")),
            address=_optional_str(data.get("address")),
        )


def _optional_str(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class MalformedTrade:
    """Exchange payload that could not be mapped to a RawTradeRecord.

    It stays in the fetched block so the dedup watermark still sees its id;
    conversion reports it as a row error.

    Attributes:
        id: Exchange id found in the payload, if any.
        payload: Text form of the original payload.
        message: Why the payload could not be mapped.
    """

    id: Optional[str]
    payload: str
    message: str

    @classmethod
    def from_payload(cls, payload: object, error: Exception) -> "MalformedTrade":
        """Wrap a payload that failed mapping with the error it raised."""
        trade_id = payload.get("id") if isinstance(payload, Mapping) else None
        return cls(
            id=_optional_str(trade_id),
            payload=str(payload),
            message=f"Malformed trade payload: {error!r}",
        )


# One entry of a fetched page
FetchedTrade = RawTradeRecord | MalformedTrade


@dataclass(frozen=True)
class CanonicalTransaction:
    """Normalized transaction ready for portfolio/tax accounting.

    Attributes:
        id: Unique id (exchange id, or derived "<id>-fee" / "<id>-rebate").
        timestamp: Execution time.
        base: Base currency.
        quote: Quote currency (equal to base for non-trade kinds).
        kind: Transaction kind.
        quantity: Base quantity.
        unit_price: Price per base unit in the quote currency, if known.
        note: Free-text note.
        address: Wallet address (crypto transfers and staking-like kinds).
        fee_rebate_currency: Currency of a FEE/REBATE entry.
    """

    id: Optional[str]
    timestamp: datetime
    base: Currency
    quote: Currency
    kind: TransactionKind
    quantity: Decimal
    unit_price: Optional[Decimal] = None
    note: Optional[str] = None
    address: Optional[str] = None
    fee_rebate_currency: Optional[Currency] = None

    @property
    def transaction_price(self) -> Optional[Decimal]:
        """Total price in the quote currency (quantity * unit price)."""
        if self.unit_price is None:
            return None
        return self.quantity * self.unit_price


@dataclass
class TransactionCluster:
    """A primary transaction plus its derived fee/rebate sub-transactions.

    The cluster is immutable once published except for the two fee
    annotations, each of which may be set at most once.
    """

    main: CanonicalTransaction
    related: tuple[CanonicalTransaction, ...] = ()

    ignored_fee: bool = False
    ignored_fee_message: Optional[str] = None
    failed_fee: bool = False
    failed_fee_message: Optional[str] = None

    def mark_fee_ignored(self, message: str) -> None:
        """Flag that a fee/rebate currency could not be resolved.

        Raises:
            ValueError: If the flag was already set.
        """
        if self.ignored_fee:
            raise ValueError("Ignored-fee flag already set on cluster")
        self.ignored_fee = True
        self.ignored_fee_message = message

    def mark_fee_failed(self, message: str) -> None:
        """Flag that deriving a fee/rebate failed unexpectedly.

        Raises:
            ValueError: If the flag was already set.
        """
        if self.failed_fee:
            raise ValueError("Failed-fee flag already set on cluster")
        self.failed_fee = True
        self.failed_fee_message = message

    @property
    def fees(self) -> list[CanonicalTransaction]:
        return [tx for tx in self.related if tx.kind is TransactionKind.FEE]

    @property
    def rebates(self) -> list[CanonicalTransaction]:
        return [tx for tx in self.related if tx.kind is TransactionKind.REBATE]

    @property
    def fee_quote(self) -> Optional[Decimal]:
        """Sum of derived fees charged in the primary quote currency."""
        amounts = [tx.quantity for tx in self.fees if tx.base == self.main.quote]
        if not amounts:
            return None
        return sum(amounts, Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"TransactionCluster(id={self.main.id!r}, "
            f"kind={self.main.kind.value}, "
            f"related={len(self.related)}, "
            f"ignored_fee={self.ignored_fee}, failed_fee={self.failed_fee})"
        )


class RowErrorType(Enum):
    """Kind of row-level conversion failure."""

    FAILED = "failed"


@dataclass(frozen=True)
class ConversionError:
    """A raw row that could not be converted.

    Attributes:
        row: Text form of the original raw record.
        message: Failure message.
        error_type: Fixed error kind.
    """

    row: str
    message: str
    error_type: RowErrorType = RowErrorType.FAILED


@dataclass
class ConversionStatistic:
    """Row-level outcome of converting one batch."""

    errors: list[ConversionError] = field(default_factory=list)
    ignored_rows: int = 0

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass
class ParseResult:
    """Clusters and row errors produced from one batch of raw trades."""

    clusters: list[TransactionCluster] = field(default_factory=list)
    statistic: ConversionStatistic = field(default_factory=ConversionStatistic)

    @property
    def errors(self) -> list[ConversionError]:
        return self.statistic.errors


@dataclass
class DownloadResult:
    """Outcome of one synchronization cycle.

    Attributes:
        parse_result: Converted clusters and row errors.
        last_downloaded_transaction_id: Cursor to pass to the next cycle.
    """

    parse_result: ParseResult
    last_downloaded_transaction_id: Optional[str] = None
