#!/usr/bin/env python3
"""Exchange trade importer.

This is the main entry point script for the trade importer.
It wraps the package CLI for convenient execution.

Usage:
    python import_trades.py --connector bittrexApiConnector --output ./output

For full documentation and options:
    python import_trades.py --help
"""

import sys
from pathlib import Path

# Add src to path for development installs
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from trade_importer.cli import main

if __name__ == "__main__":
    sys.exit(main())
