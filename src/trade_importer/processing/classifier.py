"""Classification of raw exchange records into transaction clusters."""

from decimal import Decimal
from typing import Optional

from trade_importer.models.currency import Currency
from trade_importer.models.transaction import (
    FEE_UID_PART,
    REBATE_UID_PART,
    CanonicalTransaction,
    RawTradeRecord,
    TransactionCluster,
    TransactionKind,
)
from trade_importer.processing.currency_resolver import CurrencyResolver, UnknownCurrencyError
from trade_importer.utils.decimal_utils import eval_unit_price, null_or_zero, scale_amount
from trade_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


class ClassificationError(Exception):
    """Base exception for records that cannot be classified."""

    pass


class UnsupportedKindError(ClassificationError):
    """Raised when a record carries a kind with no classification rule."""

    pass


class ValidationError(ClassificationError):
    """Raised when a record violates a currency or pair invariant."""

    pass


def count_unit_price(raw: RawTradeRecord) -> Optional[Decimal]:
    """Derive the unit price of a record from its quote amount and volume.

    Not applied by the classifier; exchange clients call it when a payload
    carries a total cost but no price.
    """
    return eval_unit_price(raw.quote_amount, raw.volume)


class TransactionClassifier:
    """Turns a RawTradeRecord into a TransactionCluster.

    The kind of the record selects the rule:
    - REWARD: bare primary, no fee/rebate derivation
    - BUY/SELL: validated trade pair with unit price
    - DEPOSIT/WITHDRAWAL: transfer; address kept for crypto only
    - STAKE, UNSTAKE, STAKING_REWARD, EARNING, FORK, AIRDROP: single-currency
      event with note and address
    - FEE/REBATE: standalone fee or rebate in the base currency

    Every rule except REWARD also derives FEE and REBATE sub-transactions
    from the record's fee and rebate amounts. A fee that cannot be derived
    never fails the record; the cluster is annotated instead.
    """

    def __init__(self, resolver: Optional[CurrencyResolver] = None):
        """Initialize classifier.

        Args:
            resolver: Currency resolver (default uses the built-in table).
        """
        self.resolver = resolver if resolver is not None else CurrencyResolver()

    def classify(self, raw: RawTradeRecord) -> TransactionCluster:
        """Classify a single raw record.

        Args:
            raw: Record reported by the exchange.

        Returns:
            Cluster with the primary transaction and derived fee/rebate entries.

        Raises:
            UnsupportedKindError: If the kind has no classification rule.
            ValidationError: If a currency or pair invariant is violated.
        """
        kind = self._parse_kind(raw.kind)
        base = self._resolve_primary(raw.base_code, "base")

        match kind:
            case TransactionKind.REWARD:
                return TransactionCluster(
                    main=CanonicalTransaction(
                        id=raw.id,
                        timestamp=raw.timestamp,
                        base=base,
                        quote=base,
                        kind=kind,
                        quantity=raw.volume,
                    )
                )
            case TransactionKind.BUY | TransactionKind.SELL:
                main = self._buy_sell(raw, kind, base)
            case TransactionKind.DEPOSIT | TransactionKind.WITHDRAWAL:
                main = self._deposit_withdrawal(raw, kind, base)
            case (
                TransactionKind.STAKE
                | TransactionKind.UNSTAKE
                | TransactionKind.STAKING_REWARD
                | TransactionKind.EARNING
                | TransactionKind.FORK
                | TransactionKind.AIRDROP
            ):
                main = CanonicalTransaction(
                    id=raw.id,
                    timestamp=raw.timestamp,
                    base=base,
                    quote=base,
                    kind=kind,
                    quantity=raw.volume,
                    unit_price=raw.unit_price,
                    note=raw.note,
                    address=raw.address,
                )
            case TransactionKind.FEE | TransactionKind.REBATE:
                main = CanonicalTransaction(
                    id=raw.id,
                    timestamp=raw.timestamp,
                    base=base,
                    quote=base,
                    kind=kind,
                    quantity=raw.volume,
                    fee_rebate_currency=base,
                )
            case _:
                raise UnsupportedKindError(f"Unsupported transaction type {kind.name}.")

        return self._with_fee_and_rebate(raw, main)

    def _parse_kind(self, tag: "TransactionKind | str") -> TransactionKind:
        try:
            return TransactionKind.parse(tag)
        except ValueError:
            raise UnsupportedKindError(f"Unsupported transaction type {tag}.") from None

    def _resolve_primary(self, code: Optional[str], role: str) -> Currency:
        try:
            return self.resolver.resolve(code)
        except UnknownCurrencyError as e:
            raise ValidationError(f"Unsupported {role} currency: {code!r}") from e

    def _buy_sell(
        self,
        raw: RawTradeRecord,
        kind: TransactionKind,
        base: Currency,
    ) -> CanonicalTransaction:
        if raw.quote_code is None:
            raise ValidationError(f"Invalid currency pair: {base.code}/None")
        quote = self._resolve_primary(raw.quote_code, "quote")
        if base == quote:
            raise ValidationError(f"Invalid currency pair: {base.code}/{quote.code}")
        if base.is_fiat:
            raise ValidationError(f"Base currency is not crypto: {base.code}")

        return CanonicalTransaction(
            id=raw.id,
            timestamp=raw.timestamp,
            base=base,
            quote=quote,
            kind=kind,
            quantity=raw.volume,
            unit_price=raw.unit_price,
        )

    def _deposit_withdrawal(
        self,
        raw: RawTradeRecord,
        kind: TransactionKind,
        base: Currency,
    ) -> CanonicalTransaction:
        quote = base
        if raw.quote_code is not None:
            quote = self._resolve_primary(raw.quote_code, "quote")

        return CanonicalTransaction(
            id=raw.id,
            timestamp=raw.timestamp,
            base=base,
            quote=quote,
            kind=kind,
            quantity=raw.volume,
            # Fiat transfers carry no address
            address=None if base.is_fiat else raw.address,
        )

    def _with_fee_and_rebate(
        self,
        raw: RawTradeRecord,
        main: CanonicalTransaction,
    ) -> TransactionCluster:
        """Build the cluster, deriving fee and rebate independently."""
        related: list[CanonicalTransaction] = []
        ignored: list[str] = []
        failed: list[str] = []

        legs = (
            (TransactionKind.FEE, raw.fee_amount, raw.fee_code, FEE_UID_PART),
            (TransactionKind.REBATE, raw.rebate_amount, raw.rebate_code, REBATE_UID_PART),
        )
        for kind, amount, code, uid_part in legs:
            label = kind.value.lower()
            try:
                derived = self._derive(main, kind, amount, code, uid_part)
            except UnknownCurrencyError as e:
                logger.warning(f"Ignoring {label} of transaction {main.id}: {e}")
                ignored.append(f"{label}: {e}")
            except Exception as e:
                logger.exception(f"Failed to derive {label} of transaction {main.id}")
                failed.append(f"{label}: {e}")
            else:
                if derived is not None:
                    related.append(derived)

        cluster = TransactionCluster(main=main, related=tuple(related))
        if ignored:
            cluster.mark_fee_ignored("; ".join(ignored))
        if failed:
            cluster.mark_fee_failed("; ".join(failed))
        return cluster

    def _derive(
        self,
        main: CanonicalTransaction,
        kind: TransactionKind,
        amount: Optional[Decimal],
        code: Optional[str],
        uid_part: str,
    ) -> Optional[CanonicalTransaction]:
        if null_or_zero(amount):
            return None

        currency = self.resolver.resolve(code)
        return CanonicalTransaction(
            id=main.id + uid_part if main.id is not None else None,
            timestamp=main.timestamp,
            base=currency,
            quote=currency,
            kind=kind,
            quantity=scale_amount(amount),  # type: ignore[arg-type]
            fee_rebate_currency=currency,
        )


def classify_records(
    records: list[RawTradeRecord],
    resolver: Optional[CurrencyResolver] = None,
) -> list[TransactionCluster]:
    """Convenience function to classify records, failing on the first error.

    Use BatchConverter to isolate per-row failures instead.

    Args:
        records: Raw records to classify.
        resolver: Optional currency resolver.

    Returns:
        One cluster per record, in input order.
    """
    classifier = TransactionClassifier(resolver)
    return [classifier.classify(raw) for raw in records]
