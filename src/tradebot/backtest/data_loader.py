"""Historical data loading and result export."""

import json
from pathlib import Path
from typing import List, Optional

import pandas as pd

from tradebot.backtest.result import BacktestResult
from tradebot.core.exceptions import DataValidationError
from tradebot.core.logger import get_logger
from tradebot.core.models import Candle


logger = get_logger("backtest.data_loader")

REQUIRED_COLUMNS = ("open", "high", "low", "close")
TIME_COLUMNS = ("close_time", "closeTime", "timestamp")


def candles_from_dataframe(df: pd.DataFrame) -> List[Candle]:
    """Convert an OHLCV frame to candles sorted by close time.

    ``close_time`` (or ``closeTime``/``timestamp``) may hold millisecond
    epochs or datetime strings. Duplicate close times keep the last row.
    """
    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise DataValidationError(f"missing columns: {', '.join(missing)}")

    time_column = next((column for column in TIME_COLUMNS if column in df.columns), None)
    if time_column is None:
        raise DataValidationError(f"one of {', '.join(TIME_COLUMNS)} is required")

    df = df.copy()
    times = df[time_column]
    if not pd.api.types.is_numeric_dtype(times):
        parsed = pd.to_datetime(times, utc=True)
        times = (parsed - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(milliseconds=1)
    df["close_time"] = times.astype("int64")
    if "volume" not in df.columns:
        df["volume"] = 0.0

    df = df.sort_values("close_time", kind="mergesort")
    duplicates = int(df["close_time"].duplicated(keep="last").sum())
    if duplicates:
        logger.warning(f"Dropping {duplicates} rows with duplicate close times")
        df = df.drop_duplicates("close_time", keep="last")

    return [
        Candle(
            open=float(row.open),
            close=float(row.close),
            high=float(row.high),
            low=float(row.low),
            volume=float(row.volume),
            close_time=int(row.close_time),
        )
        for row in df.itertuples(index=False)
    ]


def load_candles_csv(path: str) -> List[Candle]:
    """Load candles from a CSV file."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    df = pd.read_csv(file_path)
    candles = candles_from_dataframe(df)
    logger.info(f"Loaded {len(candles)} candles from {path}")
    return candles


def end_of_day_ms(date: str) -> int:
    """Last millisecond of a YYYY-MM-DD day in UTC."""
    end = pd.Timestamp(date, tz="UTC") + pd.Timedelta(days=1)
    return int(end.value // 1_000_000) - 1


def filter_candles_by_date(
    candles: List[Candle],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[Candle]:
    """Keep candles closing within ``start_date``..``end_date`` (YYYY-MM-DD, UTC).

    Both bounds are inclusive days; an unset bound is open.
    """
    start = pd.Timestamp(start_date, tz="UTC") if start_date else None
    end = pd.Timestamp(end_date, tz="UTC") + pd.Timedelta(days=1) if end_date else None
    if start is not None and end is not None and start >= end:
        raise DataValidationError(f"start date {start_date} is after end date {end_date}")

    selected = [
        candle for candle in candles
        if (start is None or candle.close_datetime >= start)
        and (end is None or candle.close_datetime < end)
    ]
    if start is not None or end is not None:
        logger.info(
            f"Selected {len(selected)} of {len(candles)} candles "
            f"between {start_date or 'start'} and {end_date or 'end'}"
        )
    return selected


def save_result_json(result: BacktestResult, path: str) -> None:
    """Write a backtest result as JSON."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)
    logger.info(f"Saved backtest result to {path}")
