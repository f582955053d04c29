"""Output generation for CSV renderings."""

from trade_importer.output.csv_exporter import CSVExporter

__all__ = ["CSVExporter"]
