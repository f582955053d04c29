"""Command-line interface for the trade importer."""

import argparse
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from trade_importer import __version__
from trade_importer.clients.base import BaseTradeClient, FetchError
from trade_importer.clients.json_client import JsonFileTradeClient
from trade_importer.config import (
    ConfigError,
    load_config,
    load_connector_parameters,
    load_cursor,
    save_cursor,
    write_parameters_template,
)
from trade_importer.connectors.base import ConnectorConfigError, ExchangeConnector
from trade_importer.connectors.registry import DESCRIPTORS, get_descriptor
from trade_importer.models.transaction import DownloadResult
from trade_importer.output.csv_exporter import TRANSACTION_COLUMNS, CSVExporter, cluster_to_row
from trade_importer.utils.logging_config import setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()

# Rows shown in the console preview table
PREVIEW_ROWS = 20


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="trade-importer",
        description=(
            "Download exchange trades and normalize them into canonical "
            "transactions for portfolio and tax accounting"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --connector bittrexApiConnector
  %(prog)s --connector kraken --full -o ./output
  %(prog)s --connector bittrex --input-file page.json --follow-up --dry-run
  %(prog)s --list-connectors
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c", "--connector",
        default=None,
        help="Connector id or exchange name (see --list-connectors)",
    )

    parser.add_argument(
        "--params",
        type=Path,
        default=None,
        help="Connector parameter file (default: <private_dir>/<connector-id>.yaml)",
    )

    parser.add_argument(
        "--input-file",
        type=Path,
        default=None,
        help="Read raw trades from a JSON file instead of the exchange API",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Directory for transactions.csv and errors.csv",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: config/settings.yaml)",
    )

    parser.add_argument(
        "--config-dir",
        type=Path,
        default=Path("config"),
        help="Base config directory (default: ./config)",
    )

    parser.add_argument(
        "--state",
        type=Path,
        default=None,
        help="State file holding sync cursors (default: from settings or ./state.yaml)",
    )

    # Sync options
    parser.add_argument(
        "--full",
        action="store_true",
        help="Ignore the stored cursor and request the full history",
    )

    parser.add_argument(
        "--follow-up",
        action="store_true",
        help="Run a second incremental sync right after the first one",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not persist the new cursor",
    )

    parser.add_argument(
        "--list-connectors",
        action="store_true",
        help="List available connectors and exit",
    )

    parser.add_argument(
        "--write-templates",
        action="store_true",
        help="Write parameter templates for all connectors and exit",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (-v, -vv)",
    )

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def list_connectors() -> int:
    """Print the available connectors.

    Returns:
        Exit code.
    """
    table = Table(title="Connectors")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Exchange")
    table.add_column("Parameters")
    for descriptor in DESCRIPTORS.values():
        params = ", ".join(f"{p.id} ({p.type.value})" for p in descriptor.parameters)
        table.add_row(descriptor.id, descriptor.name, descriptor.exchange, params)
    console.print(table)
    return 0


def display_result(result: DownloadResult, title: str) -> None:
    """Display one sync cycle's outcome.

    Args:
        result: Download result to show.
        title: Heading for this cycle.
    """
    parse_result = result.parse_result
    clusters = parse_result.clusters
    errors = parse_result.errors

    console.print(f"\n[bold]{title}[/bold]")

    if clusters:
        table = Table(show_lines=False)
        for column in TRANSACTION_COLUMNS:
            table.add_column(column)
        for cluster in clusters[:PREVIEW_ROWS]:
            table.add_row(*cluster_to_row(cluster))
        console.print(table)
        if len(clusters) > PREVIEW_ROWS:
            console.print(f"  ... and {len(clusters) - PREVIEW_ROWS} more")

    ignored = [c for c in clusters if c.ignored_fee]
    failed = [c for c in clusters if c.failed_fee]

    console.print(f"  Transactions: {len(clusters)}")
    console.print(f"  Derived fees/rebates: {sum(len(c.related) for c in clusters)}")
    console.print(f"  Ignored fees: {len(ignored)}")
    console.print(f"  Failed fees: {len(failed)}")
    for cluster in (ignored + failed)[:10]:
        message = cluster.ignored_fee_message or cluster.failed_fee_message
        console.print(f"    [yellow]{cluster.main.id}: {message}[/yellow]")

    if errors:
        console.print(f"\n[red]Errors ({len(errors)}):[/red]")
        for e in errors[:10]:
            console.print(f"  - {e.message}")
        if len(errors) > 10:
            console.print(f"  ... and {len(errors) - 10} more")

    console.print(f"  Last downloaded transaction id: {result.last_downloaded_transaction_id}")


def run_cycle(connector: ExchangeConnector, cursor: Optional[str], title: str) -> DownloadResult:
    """Run one sync cycle and display its outcome.

    Args:
        connector: Connector to drive.
        cursor: Cursor to resume from.
        title: Heading for this cycle.

    Returns:
        The cycle's download result.

    Raises:
        FetchError: If the download fails (already logged by the connector).
    """
    with console.status(f"[bold green]{title}: downloading transactions..."):
        result = connector.get_transactions(cursor)
    display_result(result, title)
    return result


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Argument list (default: sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = get_log_level(args.verbose)
    setup_logging(level=log_level, console_output=args.verbose > 0)

    if args.list_connectors:
        return list_connectors()

    try:
        config = load_config(settings_path=args.config, config_dir=args.config_dir)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    # Settings choose the log file; -v still overrides the level
    setup_logging(
        level=log_level if args.verbose else config.logging.level,
        log_file=config.logging.file,
        console_output=args.verbose > 0,
    )

    if args.write_templates:
        for descriptor in DESCRIPTORS.values():
            path = write_parameters_template(descriptor, config.private_dir)
            console.print(f"[green]Wrote {path}[/green]")
        return 0

    if args.connector is None:
        console.print("[red]Error: --connector is required[/red]")
        parser.print_usage()
        return 1

    try:
        descriptor = get_descriptor(args.connector)
    except ConnectorConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    client: Optional[BaseTradeClient] = None
    parameters: dict[str, str] = {}
    if args.input_file is not None:
        client = JsonFileTradeClient(args.input_file)
    else:
        try:
            parameters = load_connector_parameters(descriptor, config.private_dir, args.params)
        except (ConfigError, FileNotFoundError) as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1

    try:
        connector = ExchangeConnector(
            descriptor,
            parameters,
            client=client,
            resolver=config.build_resolver(descriptor.exchange),
        )
    except ConnectorConfigError as e:
        template = write_parameters_template(descriptor, config.private_dir)
        console.print(f"[red]Error: {e}[/red]")
        console.print(f"Fill in {template} and remove the '.template' suffix.")
        return 1

    state_path = args.state or config.state_file
    try:
        cursor = None if args.full else load_cursor(state_path, descriptor.id)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(f"[bold]Trade Importer v{__version__}[/bold]\n")
    console.print(f"Connector: {descriptor.name} ({descriptor.id})")
    console.print(f"Source: {args.input_file or descriptor.exchange}")
    console.print(f"Starting cursor: {cursor or 'full history'}")

    titles = ["First sync", "Follow-up sync"] if args.follow_up else ["First sync"]
    results: list[DownloadResult] = []
    exit_code = 0

    with connector:
        for title in titles:
            try:
                result = run_cycle(connector, cursor, title)
            except FetchError as e:
                console.print(f"[red]Download failed: {e}[/red]")
                exit_code = 1
                break
            results.append(result)
            cursor = result.last_downloaded_transaction_id
            # Persist after every finished cycle
            if not args.dry_run:
                save_cursor(state_path, descriptor.id, cursor)

    if args.output is not None and results:
        exporter = CSVExporter()
        clusters = [c for r in results for c in r.parse_result.clusters]
        errors = [e for r in results for e in r.parse_result.errors]
        paths = exporter.export(args.output, clusters, errors, write_errors=config.output.write_errors)
        console.print(f"\n[green]CSV files written to {paths[0].parent}[/green]")

    if args.dry_run:
        console.print("\n[yellow]Dry run - cursor not saved[/yellow]")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
