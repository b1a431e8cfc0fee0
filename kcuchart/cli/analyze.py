"""Analyze commands for kcuchart CLI.

Shows the indicator overlays and level layout a chart would draw for
stored candles.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kcuchart.cli.data import VALID_TIMEFRAMES, _get_data_store

console = Console()


def _format_time(time_seconds: int, timezone: str) -> str:
    import pytz

    return datetime.fromtimestamp(time_seconds, tz=pytz.timezone(timezone)).strftime(
        "%Y-%m-%d %H:%M"
    )


def _format_value(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "[dim]-[/dim]"


def _load_chart(settings, symbol: str, timeframe: str):
    """Build a chart over the stored candles, or None when there are none."""
    from kcuchart.chart.engine import ChartEngine

    candles = _get_data_store(settings).get_candles(symbol, timeframe)
    if not candles:
        console.print(Panel(
            f"[yellow]No {timeframe} candles stored for {symbol}[/yellow]\n\n"
            f"[dim]Run [cyan]kcuchart import {symbol} FILE -t {timeframe}[/cyan] first.[/dim]",
            title="[bold yellow]No Data[/bold yellow]",
            border_style="yellow",
        ))
        return None

    chart = ChartEngine(settings=settings)
    chart.load(candles)
    return chart


def _read_level_file(path: Path) -> tuple[list, list]:
    """Parse a ``{"levels": [...], "gamma_levels": [...]}`` file."""
    from kcuchart.models import GammaLevel, PriceLevel

    with open(path) as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError("Expected an object with 'levels' and/or 'gamma_levels'")

    levels = [PriceLevel.model_validate(item) for item in payload.get("levels", [])]
    gamma_levels = [GammaLevel.model_validate(item) for item in payload.get("gamma_levels", [])]
    return levels, gamma_levels


@click.command()
@click.argument("symbol")
@click.option(
    "-t", "--timeframe",
    default="5min",
    type=click.Choice(VALID_TIMEFRAMES),
    help="Candle timeframe (default: 5min)",
)
@click.option(
    "-n", "--rows",
    default=20,
    type=click.IntRange(min=1),
    help="Number of recent bars to show (default: 20)",
)
@click.pass_context
def indicators(ctx: click.Context, symbol: str, timeframe: str, rows: int) -> None:
    """Show EMA, SMA and session VWAP for stored candles.

    SYMBOL is the trading symbol (e.g., SPY, QQQ).

    \b
    Examples:
      kcuchart indicators SPY
      kcuchart indicators QQQ -t 1min -n 50
    """
    settings = ctx.obj["settings"]
    symbol = symbol.upper()

    chart = _load_chart(settings, symbol, timeframe)
    if chart is None:
        return

    series = chart.series()
    candles = chart.store.candles
    inside = set(chart.indicators.inside_bars)

    table = Table(
        title=f"{symbol} - {timeframe} ({len(candles)} candles)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Date/Time", style="dim")
    table.add_column("Close", justify="right")
    table.add_column("Volume", justify="right", style="dim")
    for name in series:
        table.add_column(name.upper(), justify="right")
    table.add_column("", justify="center")

    start = max(0, len(candles) - rows)
    for index in range(start, len(candles)):
        candle = candles[index]
        volume = f"{candle.volume:,.0f}" if candle.volume is not None else "-"
        table.add_row(
            _format_time(candle.time, settings.timezone),
            f"{candle.close:.2f}",
            volume,
            *[_format_value(values.values[index]) for values in series.values()],
            "[yellow]IB[/yellow]" if index in inside else "",
        )

    console.print(table)

    if len(chart.indicators.ema_periods) >= 2:
        bias = "[green]Bullish[/green]" if chart.indicators.cloud_bullish else "[red]Bearish[/red]"
        console.print(f"EMA cloud: {bias}")
    ribbon = chart.ribbon()
    if ribbon is not None:
        color = {"bullish": "green", "bearish": "red"}.get(ribbon.color, "yellow")
        trend = "expanding" if ribbon.expanding else "contracting" if ribbon.contracting else "steady"
        console.print(
            f"EMA ribbon: [{color}]{ribbon.color.capitalize()}[/{color}] "
            f"strength {ribbon.strength:.0f}, {trend}"
        )
    if len(candles) > rows:
        console.print(f"[dim]Showing last {rows} of {len(candles)} candles[/dim]")
    if chart.diagnostics.total_dropped:
        console.print(f"[yellow]Dropped {chart.diagnostics.total_dropped} invalid bars[/yellow]")


@click.command()
@click.argument("symbol")
@click.option(
    "-f", "--file",
    "level_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with 'levels' and 'gamma_levels' to store first",
)
@click.option(
    "-t", "--timeframe",
    default="5min",
    type=click.Choice(VALID_TIMEFRAMES),
    help="Candle timeframe used for the last price (default: 5min)",
)
@click.pass_context
def levels(ctx: click.Context, symbol: str, level_file: Optional[Path], timeframe: str) -> None:
    """Show the level slots a chart would draw for a symbol.

    SYMBOL is the trading symbol (e.g., SPY, QQQ).

    \b
    Examples:
      kcuchart levels SPY --file spy_levels.json
      kcuchart levels SPY
    """
    from pydantic import ValidationError

    from kcuchart.chart.engine import ChartEngine

    settings = ctx.obj["settings"]
    symbol = symbol.upper()
    store = _get_data_store(settings)

    if level_file is not None:
        try:
            price_levels, gamma_levels = _read_level_file(level_file)
        except (OSError, ValueError, ValidationError) as e:
            console.print(Panel(
                f"[red]Could not read {level_file}:[/red]\n\n{str(e)}",
                title="[bold red]Error[/bold red]",
                border_style="red",
            ))
            raise SystemExit(1)
        store.save_levels(symbol, price_levels, gamma_levels)
        console.print(
            f"[green]✓[/green] Saved {len(price_levels)} levels and "
            f"{len(gamma_levels)} gamma levels for {symbol}"
        )
    else:
        price_levels, gamma_levels = store.get_levels(symbol)

    if not price_levels and not gamma_levels:
        console.print(f"[dim]No levels stored for {symbol}. Use [cyan]--file[/cyan].[/dim]")
        return

    chart = ChartEngine(settings=settings)
    candles = store.get_candles(symbol, timeframe, limit=1)
    if candles:
        chart.load(candles)
    chart.set_levels(price_levels, gamma_levels)

    last = chart.store.last()
    title = f"{symbol} Levels"
    if last is not None:
        title += f" (last {last.close:.2f})"

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Slot", justify="right", style="dim")
    table.add_column("Label", style="bold")
    table.add_column("Kind")
    table.add_column("Price", justify="right")
    table.add_column("Width", justify="right")
    table.add_column("Style")
    table.add_column("Near", justify="center")

    for slot in chart.levels.slots:
        if not slot.active:
            continue
        level = slot.level
        table.add_row(
            f"{slot.pool}:{slot.index}",
            f"[{level.color}]{level.label}[/{level.color}]",
            level.kind,
            f"{level.price:.2f}",
            str(level.line_width),
            level.line_style,
            "[bold yellow]●[/bold yellow]" if level.near else "",
        )

    console.print(table)

    dropped = chart.diagnostics.total_dropped
    if dropped:
        console.print(f"[yellow]{dropped} levels did not fit or were invalid[/yellow]")
