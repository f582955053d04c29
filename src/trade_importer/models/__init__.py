"""Data models for currencies, raw trades and canonical transactions."""

from trade_importer.models.currency import Currency
from trade_importer.models.transaction import (
    CanonicalTransaction,
    ConversionError,
    ConversionStatistic,
    DownloadResult,
    FetchedTrade,
    MalformedTrade,
    ParseResult,
    RawTradeRecord,
    RowErrorType,
    TransactionCluster,
    TransactionKind,
)

__all__ = [
    "Currency",
    "CanonicalTransaction",
    "ConversionError",
    "ConversionStatistic",
    "DownloadResult",
    "FetchedTrade",
    "MalformedTrade",
    "ParseResult",
    "RawTradeRecord",
    "RowErrorType",
    "TransactionCluster",
    "TransactionKind",
]
