"""CLI commands for kcuchart.

This package provides the command-line interface for kcuchart,
including candle import, indicator and level inspection, and replay.
"""

from kcuchart.cli.main import cli, main

__all__ = ["cli", "main"]
