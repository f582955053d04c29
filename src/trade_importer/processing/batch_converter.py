"""Batch conversion of raw trades with per-row error isolation."""

from typing import Iterable, Optional

from trade_importer.models.transaction import (
    ConversionError,
    ConversionStatistic,
    FetchedTrade,
    MalformedTrade,
    ParseResult,
    RowErrorType,
    TransactionCluster,
)
from trade_importer.processing.classifier import ClassificationError, TransactionClassifier
from trade_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


class BatchConverter:
    """Runs the classifier over a block of raw trades.

    A row that fails classification becomes a ConversionError and the batch
    continues with the next row; one bad record never aborts a sync.
    """

    def __init__(self, classifier: Optional[TransactionClassifier] = None):
        """Initialize converter.

        Args:
            classifier: Classifier to apply per row (default new instance).
        """
        self.classifier = classifier if classifier is not None else TransactionClassifier()

    def convert(self, raw_block: Iterable[FetchedTrade]) -> ParseResult:
        """Convert a block of raw trades.

        Args:
            raw_block: Already deduplicated raw trades; payloads the client
                could not map arrive as MalformedTrade and become row errors.

        Returns:
            ParseResult with clusters and row errors, both in input order.
        """
        clusters: list[TransactionCluster] = []
        errors: list[ConversionError] = []
        total = 0

        for raw in raw_block:
            total += 1
            if isinstance(raw, MalformedTrade):
                logger.warning(f"Cannot convert trade {raw.id}: {raw.message}")
                errors.append(ConversionError(raw.payload, raw.message, RowErrorType.FAILED))
                continue
            try:
                cluster = self.classifier.classify(raw)
            except ClassificationError as e:
                logger.warning(f"Cannot convert trade {raw.id}: {e}")
                errors.append(ConversionError(str(raw), str(e), RowErrorType.FAILED))
                continue
            except Exception as e:
                logger.error(f"Error converting trade {raw.id}: {e}", exc_info=True)
                errors.append(ConversionError(str(raw), str(e), RowErrorType.FAILED))
                continue
            clusters.append(cluster)

        ignored_fees = sum(1 for c in clusters if c.ignored_fee)
        failed_fees = sum(1 for c in clusters if c.failed_fee)
        logger.info(
            f"Converted {len(clusters)}/{total} trades "
            f"({len(errors)} errors, {ignored_fees} ignored fees, {failed_fees} failed fees)"
        )

        return ParseResult(
            clusters=clusters,
            statistic=ConversionStatistic(errors=errors, ignored_rows=0),
        )


def convert_trades(
    raw_block: Iterable[FetchedTrade],
    classifier: Optional[TransactionClassifier] = None,
) -> ParseResult:
    """Convenience function to convert a block of raw trades.

    Args:
        raw_block: Raw trades to convert.
        classifier: Optional classifier.

    Returns:
        ParseResult with clusters and row errors.
    """
    converter = BatchConverter(classifier)
    return converter.convert(raw_block)
