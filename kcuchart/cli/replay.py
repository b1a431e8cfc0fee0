"""Replay command for kcuchart CLI.

Streams stored candles through the live update path, tick by tick, and
reports how long each update took.
"""

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kcuchart.cli.data import VALID_TIMEFRAMES, _get_data_store
from kcuchart.models import Candle

console = Console()


def split_into_ticks(candle: Candle, ticks_per_bar: int) -> list[Candle]:
    """Break a finished bar into a sequence of same-timestamp ticks.

    Earlier ticks walk the close from open towards the final close; the
    last tick carries the full bar, so merging all of them reproduces it.
    """
    ticks = []
    for step in range(1, ticks_per_bar):
        fraction = step / ticks_per_bar
        close = candle.open + (candle.close - candle.open) * fraction
        ticks.append(
            Candle(
                time=candle.time,
                open=candle.open,
                high=max(candle.open, close),
                low=min(candle.open, close),
                close=close,
                volume=candle.volume * fraction if candle.volume is not None else None,
            )
        )
    ticks.append(candle)
    return ticks


@click.command()
@click.argument("symbol")
@click.option(
    "-t", "--timeframe",
    default="5min",
    type=click.Choice(VALID_TIMEFRAMES),
    help="Candle timeframe (default: 5min)",
)
@click.option(
    "-w", "--warmup",
    default=0,
    type=click.IntRange(min=0),
    help="Bars bulk-loaded before streaming starts (default: 0)",
)
@click.option(
    "-k", "--ticks-per-bar",
    default=4,
    type=click.IntRange(min=1),
    help="Ticks generated per bar (default: 4)",
)
@click.pass_context
def replay(ctx: click.Context, symbol: str, timeframe: str, warmup: int, ticks_per_bar: int) -> None:
    """Replay stored candles through the live tick path.

    SYMBOL is the trading symbol (e.g., SPY, QQQ).

    \b
    Examples:
      kcuchart replay SPY
      kcuchart replay SPY -w 500 -k 10
    """
    from kcuchart.chart.diagnostics import LatencyStats
    from kcuchart.chart.engine import ChartEngine

    settings = ctx.obj["settings"]
    symbol = symbol.upper()

    candles = _get_data_store(settings).get_candles(symbol, timeframe)
    if not candles:
        console.print(Panel(
            f"[yellow]No {timeframe} candles stored for {symbol}[/yellow]",
            title="[bold yellow]No Data[/bold yellow]",
            border_style="yellow",
        ))
        return

    latency = LatencyStats()
    chart = ChartEngine(settings=settings, on_latency=latency)
    chart.load(candles[:warmup])

    appended = updated = 0
    for candle in candles[warmup:]:
        for tick in split_into_ticks(candle, ticks_per_bar):
            update = chart.on_tick(tick)
            if update is None:
                continue
            if update.kind == "append":
                appended += 1
            else:
                updated += 1

    table = Table(title=f"{symbol} - {timeframe} Replay", show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Bars loaded", f"{min(warmup, len(candles)):,}")
    table.add_row("Ticks applied", f"{latency.count:,}")
    table.add_row("Bars appended", f"{appended:,}")
    table.add_row("Bar updates", f"{updated:,}")
    table.add_row("Ticks dropped", f"{chart.diagnostics.total_dropped:,}")
    if latency.count:
        table.add_row("Latency mean", f"{latency.mean:.3f} ms")
        table.add_row("Latency p95", f"{latency.percentile(95):.3f} ms")
        table.add_row("Latency max", f"{latency.max:.3f} ms")

    for name, values in chart.series().items():
        last = values.last()
        table.add_row(name.upper(), f"{last:.2f}" if last is not None else "-")

    console.print(table)

    for reason, count in sorted(chart.diagnostics.drops.items()):
        console.print(f"[yellow]{reason}: {count}[/yellow]")
