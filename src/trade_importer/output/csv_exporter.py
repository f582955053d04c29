"""CSV rendering of converted transactions for manual inspection."""

import csv
import io
from pathlib import Path
from typing import Iterable, TextIO

from trade_importer.models.transaction import ConversionError, TransactionCluster
from trade_importer.utils.date_utils import timestamp_to_iso
from trade_importer.utils.decimal_utils import format_amount
from trade_importer.utils.logging_config import get_logger
from trade_importer.utils.sanitize import sanitize_for_csv

logger = get_logger(__name__)

TRANSACTION_COLUMNS = [
    "uid", "executed", "base", "quote", "action",
    "baseQuantity", "unitPrice", "transactionPrice", "feeQuote",
]

ERROR_COLUMNS = ["row", "message", "type"]


def cluster_to_row(cluster: TransactionCluster) -> list[str]:
    """Render the primary transaction of a cluster as one CSV row.

    Args:
        cluster: Cluster to render.

    Returns:
        Values in TRANSACTION_COLUMNS order.
    """
    main = cluster.main
    return [
        sanitize_for_csv(main.id) or "",
        timestamp_to_iso(main.timestamp),
        main.base.code,
        main.quote.code,
        main.kind.value,
        format_amount(main.quantity),
        format_amount(main.unit_price),
        format_amount(main.transaction_price),
        format_amount(cluster.fee_quote),
    ]


class CSVExporter:
    """Writes clusters and row errors as CSV.

    Creates in the output directory:
    - transactions.csv (one row per primary transaction)
    - errors.csv (one row per conversion error)
    """

    def write_transactions(self, out: TextIO, clusters: Iterable[TransactionCluster]) -> int:
        """Write the transaction table to a text stream.

        Returns:
            Number of data rows written.
        """
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow(TRANSACTION_COLUMNS)
        count = 0
        for cluster in clusters:
            writer.writerow(cluster_to_row(cluster))
            count += 1
        return count

    def write_errors(self, out: TextIO, errors: Iterable[ConversionError]) -> int:
        """Write the error table to a text stream.

        Returns:
            Number of data rows written.
        """
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow(ERROR_COLUMNS)
        count = 0
        for error in errors:
            writer.writerow([
                sanitize_for_csv(error.row),
                sanitize_for_csv(error.message),
                error.error_type.value,
            ])
            count += 1
        return count

    def render(self, clusters: Iterable[TransactionCluster]) -> str:
        """Return the transaction table as a string."""
        buffer = io.StringIO()
        self.write_transactions(buffer, clusters)
        return buffer.getvalue()

    def export(
        self,
        output_dir: Path,
        clusters: list[TransactionCluster],
        errors: list[ConversionError],
        write_errors: bool = True,
    ) -> list[Path]:
        """Export clusters (and optionally errors) to CSV files.

        Args:
            output_dir: Output directory (created if needed).
            clusters: Converted clusters.
            errors: Row-level conversion errors.
            write_errors: Whether to write errors.csv.

        Returns:
            List of paths to created CSV files.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        created_files: list[Path] = []

        transactions_path = output_dir / "transactions.csv"
        with open(transactions_path, "w", newline="", encoding="utf-8") as f:
            count = self.write_transactions(f, clusters)
        logger.info(f"Exported {count} transactions to {transactions_path}")
        created_files.append(transactions_path)

        if write_errors:
            errors_path = output_dir / "errors.csv"
            with open(errors_path, "w", newline="", encoding="utf-8") as f:
                count = self.write_errors(f, errors)
            logger.info(f"Exported {count} errors to {errors_path}")
            created_files.append(errors_path)

        return created_files
