"""Data commands for kcuchart CLI.

Handles importing candle files into the local store and listing what
has been stored.
"""

import csv
import json
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

# Supported timeframes
VALID_TIMEFRAMES = ["1min", "2min", "5min", "15min", "1hour", "1day"]


def _get_data_store(settings):
    """Get the data store instance."""
    from kcuchart.db.store import DataStore

    return DataStore(settings.db_path)


def _read_records(path: Path) -> list[dict]:
    """Read raw bar records from a CSV or JSON file.

    JSON may be a list of records or an object with a ``candles`` list.
    Empty CSV cells are treated as missing.
    """
    if path.suffix.lower() == ".json":
        with open(path) as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = payload.get("candles", [])
        if not isinstance(payload, list):
            raise ValueError("Expected a list of candles")
        return payload

    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        return [
            {key.strip().lower(): value for key, value in row.items() if key and value not in (None, "")}
            for row in reader
        ]


def _parse_candles(records: list) -> tuple[list, int]:
    """Convert raw records into valid candles.

    Returns:
        Tuple of (candles sorted by time, number of skipped records).
    """
    from pydantic import ValidationError

    from kcuchart.models import Candle

    candles = {}
    skipped = 0
    for record in records:
        try:
            candle = Candle.from_feed(record)
        except (ValidationError, AttributeError, TypeError):
            skipped += 1
            continue
        if not candle.is_valid:
            skipped += 1
            continue
        candles[candle.time] = candle
    return [candles[t] for t in sorted(candles)], skipped


@click.command(name="import")
@click.argument("symbol")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-t", "--timeframe",
    default="5min",
    type=click.Choice(VALID_TIMEFRAMES),
    help="Candle timeframe (default: 5min)",
)
@click.pass_context
def import_candles(ctx: click.Context, symbol: str, file: Path, timeframe: str) -> None:
    """Import OHLCV bars from a CSV or JSON file.

    SYMBOL is the trading symbol (e.g., SPY, QQQ).
    FILE holds one bar per row with time/open/high/low/close/volume
    (or t/o/h/l/c/v). Times may be epoch seconds, epoch ms or ISO-8601.

    \b
    Examples:
      kcuchart import SPY spy_5m.csv
      kcuchart import QQQ qqq.json -t 1min
    """
    settings = ctx.obj["settings"]
    symbol = symbol.upper()

    try:
        records = _read_records(file)
    except (OSError, ValueError, csv.Error) as e:
        console.print(Panel(
            f"[red]Could not read {file}:[/red]\n\n{str(e)}",
            title="[bold red]Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    candles, skipped = _parse_candles(records)

    if not candles:
        console.print(Panel(
            f"[yellow]No valid candles found in {file}[/yellow]",
            title="[bold yellow]No Data[/bold yellow]",
            border_style="yellow",
        ))
        return

    store = _get_data_store(settings)
    try:
        store.save_candles(symbol, timeframe, candles)
    except Exception as e:
        console.print(Panel(
            f"[red]Failed to save candles:[/red]\n\n{str(e)}",
            title="[bold red]Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    console.print(f"[green]✓[/green] Imported {len(candles)} {timeframe} candles for {symbol}")
    if skipped:
        console.print(f"[yellow]Skipped {skipped} invalid rows[/yellow]")


@click.command()
@click.pass_context
def symbols(ctx: click.Context) -> None:
    """List stored symbols and timeframes."""
    store = _get_data_store(ctx.obj["settings"])
    rows = store.get_symbols()

    if not rows:
        console.print("[dim]No candles stored yet. Use [cyan]kcuchart import[/cyan].[/dim]")
        return

    table = Table(title="Stored Candles", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Timeframe")
    table.add_column("Bars", justify="right")

    for symbol, timeframe, bars in rows:
        table.add_row(symbol, timeframe, f"{bars:,}")

    console.print(table)
