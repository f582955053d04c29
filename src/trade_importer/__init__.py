"""Exchange trade importer: classification and incremental sync of exchange trades."""

__version__ = "0.1.0"
