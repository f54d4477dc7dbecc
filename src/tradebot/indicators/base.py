"""Base indicator class."""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

import pandas as pd

from tradebot.core.models import Candle


class IndicatorBase(ABC):
    """Base class for technical indicators."""

    def __init__(self, **parameters: Any):
        """Initialize indicator.

        Args:
            **parameters: Indicator parameters
        """
        self.name = self.__class__.__name__
        self.parameters = parameters
        if not self.validate_parameters():
            raise ValueError(f"Invalid {self.name} parameters: {parameters}")

    @abstractmethod
    def calculate(self, data: Sequence[Candle]) -> Any:
        """Calculate the indicator value at the last candle.

        Args:
            data: Candles in ascending close-time order

        Returns:
            Indicator value
        """
        pass

    def get_min_periods(self) -> int:
        """Get minimum periods required for calculation.

        Returns:
            Minimum number of periods
        """
        return 1

    def validate_parameters(self) -> bool:
        """Validate indicator parameters.

        Returns:
            True if valid, False otherwise
        """
        return True

    @staticmethod
    def closes(data: Sequence[Candle]) -> List[float]:
        return [candle.close for candle in data]

    def to_dataframe(self, data: Sequence[Candle]) -> pd.DataFrame:
        """Convert candles to pandas DataFrame.

        Args:
            data: Candles

        Returns:
            DataFrame indexed by close time
        """
        if not data:
            return pd.DataFrame(columns=['open', 'high', 'low', 'close', 'volume'])

        records = []
        for candle in data:
            records.append({
                'close_time': candle.close_time,
                'open': candle.open,
                'high': candle.high,
                'low': candle.low,
                'close': candle.close,
                'volume': candle.volume
            })

        df = pd.DataFrame(records)
        df.set_index('close_time', inplace=True)
        return df
