"""Tests for the kcuchart command line."""

import json
from pathlib import Path

import click
import pytest
import toml
from click.testing import CliRunner

from kcuchart.cli.main import LazyGroup, cli
from kcuchart.cli.replay import split_into_ticks
from kcuchart.chart import merge_tick
from kcuchart.db.store import DataStore
from kcuchart.models import Candle

T0 = 1_709_908_200


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(toml.dumps({
        "chart": {"sma_period": 5},
        "database": {"path": str(tmp_path / "kcuchart.db")},
    }))
    return path


@pytest.fixture
def candle_csv(tmp_path: Path) -> Path:
    path = tmp_path / "bars.csv"
    rows = ["time,open,high,low,close,volume"]
    for i in range(30):
        close = 100 + i * 0.25
        rows.append(f"{T0 + i * 300},{close - 0.1},{close + 0.3},{close - 0.3},{close},{1000 + i}")
    rows.append(f"{T0 + 30 * 300},101,102,100,101.5,")
    rows.append(f"{T0 + 31 * 300},101,102,100,0,500")
    path.write_text("\n".join(rows) + "\n")
    return path


def invoke(runner: CliRunner, config_path: Path, *args: str):
    return runner.invoke(cli, ["-c", str(config_path), *args])


class TestImport:
    def test_import_csv(self, runner, config_path, candle_csv, tmp_path):
        result = invoke(runner, config_path, "import", "spy", str(candle_csv))

        assert result.exit_code == 0, result.output
        assert "Imported 31 5min candles for SPY" in result.output
        assert "Skipped 1 invalid rows" in result.output

        candles = DataStore(tmp_path / "kcuchart.db").get_candles("SPY", "5min")
        assert len(candles) == 31
        assert candles[-1].volume is None

    def test_import_json_short_keys(self, runner, config_path, tmp_path):
        path = tmp_path / "bars.json"
        path.write_text(json.dumps({"candles": [
            {"t": (T0 + 60) * 1000, "o": 1, "h": 2, "l": 0.5, "c": 1.5, "v": 10},
            {"t": T0 * 1000, "o": 1, "h": 2, "l": 0.5, "c": 1.2, "v": 10},
        ]}))

        result = invoke(runner, config_path, "import", "QQQ", str(path), "-t", "1min")

        assert result.exit_code == 0, result.output
        candles = DataStore(tmp_path / "kcuchart.db").get_candles("QQQ", "1min")
        assert [c.time for c in candles] == [T0, T0 + 60]

    def test_import_unreadable_json(self, runner, config_path, tmp_path):
        path = tmp_path / "bars.json"
        path.write_text("{not json")

        result = invoke(runner, config_path, "import", "SPY", str(path))

        assert result.exit_code == 1
        assert "Could not read" in result.output

    def test_symbols(self, runner, config_path, candle_csv):
        invoke(runner, config_path, "import", "SPY", str(candle_csv))

        result = invoke(runner, config_path, "symbols")

        assert result.exit_code == 0
        assert "SPY" in result.output


class TestAnalyze:
    def test_indicators(self, runner, config_path, candle_csv):
        invoke(runner, config_path, "import", "SPY", str(candle_csv))

        result = invoke(runner, config_path, "indicators", "SPY", "-n", "5")

        assert result.exit_code == 0, result.output
        assert "EMA cloud" in result.output
        assert "EMA ribbon" in result.output
        assert "Showing last 5 of 31 candles" in result.output

    def test_indicators_without_data(self, runner, config_path):
        result = invoke(runner, config_path, "indicators", "SPY")

        assert result.exit_code == 0
        assert "No Data" in result.output

    def test_levels_from_file(self, runner, config_path, candle_csv, tmp_path):
        invoke(runner, config_path, "import", "SPY", str(candle_csv))
        level_file = tmp_path / "levels.json"
        level_file.write_text(json.dumps({
            "levels": [
                {"price": 99.0, "kind": "support", "label": "S1", "strength": 85},
                {"price": 110.0, "kind": "resistance", "label": "R1"},
            ],
            "gamma_levels": [{"price": 107.5, "kind": "call_wall"}],
        }))

        result = invoke(runner, config_path, "levels", "SPY", "--file", str(level_file))

        assert result.exit_code == 0, result.output
        assert "Saved 2 levels and 1 gamma levels for SPY" in result.output

        levels, gamma = DataStore(tmp_path / "kcuchart.db").get_levels("SPY")
        assert [level.label for level in levels] == ["S1", "R1"]
        assert gamma[0].kind == "call_wall"

    def test_levels_rejects_bad_file(self, runner, config_path, tmp_path):
        level_file = tmp_path / "levels.json"
        level_file.write_text(json.dumps({"levels": [{"price": 1.0, "kind": "moon"}]}))

        result = invoke(runner, config_path, "levels", "SPY", "--file", str(level_file))

        assert result.exit_code == 1


class TestReplay:
    def test_replay(self, runner, config_path, candle_csv):
        invoke(runner, config_path, "import", "SPY", str(candle_csv))

        result = invoke(runner, config_path, "replay", "SPY", "-w", "10", "-k", "3")

        assert result.exit_code == 0, result.output
        assert "Replay" in result.output

    def test_split_into_ticks_rebuilds_bar(self):
        candle = Candle(time=T0, open=100, high=103, low=98, close=101, volume=90)

        ticks = split_into_ticks(candle, 4)
        merged = ticks[0]
        for tick in ticks[1:]:
            merged = merge_tick(merged, tick)

        assert len(ticks) == 4
        assert all(tick.time == T0 for tick in ticks)
        assert merged == candle


class TestMain:
    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(toml.dumps({"chart": {"timezone": "Nowhere/Special"}}))

        result = runner.invoke(cli, ["-c", str(path), "symbols"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ["import", "indicators", "levels", "replay", "symbols"]:
            assert command in result.output

    def test_lazy_commands_resolve_to_their_targets(self):
        from kcuchart.cli.analyze import indicators

        ctx = click.Context(cli)

        assert cli.get_command(ctx, "indicators") is indicators
        assert cli.get_command(ctx, "indicators") is indicators
        assert cli.get_command(ctx, "nope") is None

    def test_missing_lazy_target(self):
        group = LazyGroup(name="kcuchart", lazy_subcommands={"chart": "kcuchart.cli.analyze:missing"})

        with pytest.raises(click.ClickException):
            group.get_command(click.Context(group), "chart")
