"""Trade processing pipeline components."""

from trade_importer.processing.currency_resolver import (
    CurrencyResolver,
    UnknownCurrencyError,
)
from trade_importer.processing.classifier import (
    ClassificationError,
    TransactionClassifier,
    UnsupportedKindError,
    ValidationError,
    classify_records,
    count_unit_price,
)
from trade_importer.processing.deduplicator import (
    Deduplicator,
    IncrementalFetcher,
    select_new,
)
from trade_importer.processing.batch_converter import (
    BatchConverter,
    convert_trades,
)

__all__ = [
    "CurrencyResolver",
    "UnknownCurrencyError",
    "ClassificationError",
    "TransactionClassifier",
    "UnsupportedKindError",
    "ValidationError",
    "classify_records",
    "count_unit_price",
    "Deduplicator",
    "IncrementalFetcher",
    "select_new",
    "BatchConverter",
    "convert_trades",
]
