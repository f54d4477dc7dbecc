import json

import pytest

from tradebot.core.exceptions import ConfigurationError
from tradebot.main import main, parse_strategy_params


def test_parse_strategy_params():
    assert parse_strategy_params(["FastWindow=5", "MinimumSpread=0.2"]) == {
        "FastWindow": 5, "MinimumSpread": 0.2,
    }
    with pytest.raises(ConfigurationError):
        parse_strategy_params(["FastWindow"])


def test_validate_command(capsys):
    code = main(["validate", "--symbol", "SOLBRL", "--quantity", "10.121457",
                 "--price", "800", "--step-size", "0.1"])
    out = capsys.readouterr().out
    assert code == 0
    assert "10.1" in out
    assert "warning" in out


def test_validate_command_without_rules(capsys):
    code = main(["validate", "--symbol", "DOGEUSDT", "--quantity", "1", "--price", "0.1"])
    assert code == 2
    assert "No exchange info" in capsys.readouterr().out


def test_backtest_command_with_generated_data(tmp_path, capsys):
    output = tmp_path / "result.json"
    code = main([
        "backtest", "--strategy", "MovingAverage", "--param", "FastWindow=5", "--param", "SlowWindow=10",
        "--candles", "200", "--seed", "7", "--amount", "0", "--output", str(output),
    ])
    assert code == 0
    assert "Total Trades" in capsys.readouterr().out
    data = json.loads(output.read_text())
    assert len(data["capital_history"]) == data["total_trades"] + 1


def test_backtest_rejects_bad_params(capsys):
    code = main(["backtest", "--strategy", "RSI", "--param", "Period=0", "--candles", "50"])
    assert code == 1
    assert "Error" in capsys.readouterr().out


def test_dry_run_command(capsys):
    code = main(["dry-run", "--cycles", "3", "--seed", "1"])
    assert code == 0
    assert "3 cycles" in capsys.readouterr().out


def test_missing_config_file(capsys):
    assert main(["--config", "missing.yaml", "validate", "--symbol", "X",
                 "--quantity", "1", "--price", "1"]) == 1


def test_backtest_selects_date_range(tmp_path, capsys):
    output = tmp_path / "result.json"
    code = main([
        "backtest", "--strategy", "MovingAverage", "--param", "FastWindow=2", "--param", "SlowWindow=4",
        "--candles", "30", "--interval", "1d", "--seed", "3",
        "--start", "2024-01-01", "--end", "2024-01-10", "--output", str(output),
    ])
    assert code == 0
    data = json.loads(output.read_text())
    assert data["start_date"].startswith("2024-01-01")
    assert data["end_date"].startswith("2024-01-10")


def test_backtest_reads_date_range_from_config(tmp_path, capsys):
    data_file = tmp_path / "candles.csv"
    rows = ["timestamp,open,high,low,close"]
    for day in range(1, 11):
        rows.append(f"2024-01-{day:02d}T00:00:00Z,10,10,10,{10 + day}")
    data_file.write_text("\n".join(rows) + "\n")
    config_file = tmp_path / "config.yaml"
    output = tmp_path / "result.json"
    config_file.write_text(
        "strategy:\n"
        "  name: MovingAverage\n"
        "  parameters: {FastWindow: 2, SlowWindow: 3}\n"
        "backtesting:\n"
        f"  data_file: {data_file}\n"
        "  start_date: '2024-01-04'\n"
        "  end_date: '2024-01-06'\n"
        f"  output_file: {output}\n"
    )
    assert main(["--config", str(config_file), "backtest"]) == 0
    data = json.loads(output.read_text())
    assert data["start_date"].startswith("2024-01-04")
    assert data["end_date"].startswith("2024-01-06")


def test_backtest_with_inverted_date_range_fails(capsys):
    code = main(["backtest", "--candles", "10", "--interval", "1d", "--end", "2024-01-10",
                 "--start", "2024-02-01"])
    assert code == 1
    assert "Error" in capsys.readouterr().out
