"""kcuchart command line.

The root group loads settings and logging; subcommands live in
``data``, ``analyze`` and ``replay`` and are imported on demand.
"""

import importlib
import logging
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """Click group whose subcommands are imported on first use.

    Each entry in ``lazy_subcommands`` maps a command name to an
    ``"package.module:attribute"`` target. The target is imported and
    cached the first time the command is resolved, so ``kcuchart --help``
    never imports the chart engine.
    """

    def __init__(self, *args, lazy_subcommands: Optional[dict[str, str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.lazy_subcommands = dict(lazy_subcommands or {})

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted({*super().list_commands(ctx), *self.lazy_subcommands})

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        command = super().get_command(ctx, cmd_name)
        if command is None and cmd_name in self.lazy_subcommands:
            command = self._resolve(cmd_name)
            self.add_command(command, cmd_name)
        return command

    def _resolve(self, cmd_name: str) -> click.Command:
        target = self.lazy_subcommands[cmd_name]
        module_name, _, attr = target.partition(":")
        command = getattr(importlib.import_module(module_name), attr, None)
        if not isinstance(command, click.Command):
            raise click.ClickException(f"Command '{cmd_name}' has no target at {target}")
        return command


LAZY_SUBCOMMANDS = {
    "import": "kcuchart.cli.data:import_candles",
    "symbols": "kcuchart.cli.data:symbols",
    "indicators": "kcuchart.cli.analyze:indicators",
    "levels": "kcuchart.cli.analyze:levels",
    "replay": "kcuchart.cli.replay:replay",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="kcuchart")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml (default: ~/.config/kcuchart/config.toml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """kcuchart - indicator and level overlay engine for KCU charts.

    Load candles, compute EMA/VWAP overlays, lay out price levels and
    replay bars through the live update path.

    \b
    Quick Start:
      kcuchart import SPY bars.csv -t 5min   # Store candles
      kcuchart indicators SPY -t 5min        # Show EMA/SMA/VWAP
      kcuchart replay SPY -t 5min            # Stream bars as ticks
    """
    from kcuchart.config import load_settings

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        ctx.obj["settings"] = load_settings(config_path)
    except ValidationError as e:
        console.print(Panel(
            f"[red]Invalid configuration:[/red]\n\n{e}",
            title="[bold red]Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
