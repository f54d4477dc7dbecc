import json

import pandas as pd
import pytest

from tradebot.backtest.data_loader import (
    candles_from_dataframe,
    end_of_day_ms,
    filter_candles_by_date,
    load_candles_csv,
    save_result_json,
)
from tradebot.backtest.engine import run_backtest
from tradebot.core.exceptions import DataValidationError
from tradebot.strategies.moving_average import MovingAverageStrategy

from conftest import candles_from_closes


def test_load_candles_csv_sorts_and_deduplicates(tmp_path):
    path = tmp_path / "candles.csv"
    path.write_text(
        "close_time,open,high,low,close,volume\n"
        "3000,12,13,11,12.5,10\n"
        "1000,10,11,9,10.5,10\n"
        "2000,11,12,10,11.5,10\n"
        "2000,11,12,10,11.0,10\n"
    )
    candles = load_candles_csv(str(path))
    assert [c.close_time for c in candles] == [1000, 2000, 3000]
    assert candles[1].close == 11.0


def test_datetime_close_times_become_milliseconds():
    df = pd.DataFrame({
        "timestamp": ["2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"],
        "open": [1.0, 1.0], "high": [1.0, 1.0], "low": [1.0, 1.0], "close": [1.0, 1.0],
    })
    candles = candles_from_dataframe(df)
    assert candles[0].close_time == 1_704_067_200_000
    assert candles[1].close_time - candles[0].close_time == 3_600_000
    assert candles[0].volume == 0.0


def test_missing_columns():
    with pytest.raises(DataValidationError):
        candles_from_dataframe(pd.DataFrame({"close_time": [1], "close": [1.0]}))
    with pytest.raises(DataValidationError):
        candles_from_dataframe(pd.DataFrame({"open": [1.0], "high": [1.0], "low": [1.0], "close": [1.0]}))


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_candles_csv("nope.csv")


def test_save_result_json(tmp_path, make_candles):
    result = run_backtest(
        MovingAverageStrategy(fast_window=2, slow_window=4),
        make_candles([10, 10, 10, 10, 8, 8, 12]),
        initial_capital=1000,
    )
    path = tmp_path / "out" / "result.json"
    save_result_json(result, str(path))

    data = json.loads(path.read_text())
    assert data["total_trades"] == 1
    assert data["final_capital"] == pytest.approx(1500)


JAN_1_2024_MS = 1_704_067_200_000
HALF_DAY_MS = 43_200_000


def test_filter_candles_by_date_is_inclusive_of_both_days():
    # closes at 00:00 and 12:00 on Jan 1, 2 and 3
    candles = candles_from_closes([1, 2, 3, 4, 5, 6], start_ms=JAN_1_2024_MS, step_ms=HALF_DAY_MS)

    selected = filter_candles_by_date(candles, "2024-01-02", "2024-01-02")
    assert [c.close for c in selected] == [3, 4]

    assert [c.close for c in filter_candles_by_date(candles, start_date="2024-01-03")] == [5, 6]
    assert [c.close for c in filter_candles_by_date(candles, end_date="2024-01-01")] == [1, 2]
    assert filter_candles_by_date(candles) == candles


def test_filter_candles_rejects_inverted_range():
    candles = candles_from_closes([1, 2], start_ms=JAN_1_2024_MS)
    with pytest.raises(DataValidationError):
        filter_candles_by_date(candles, "2024-01-05", "2024-01-01")


def test_end_of_day_ms():
    assert end_of_day_ms("2024-01-01") == JAN_1_2024_MS + 86_400_000 - 1
