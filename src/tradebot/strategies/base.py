"""Base strategy class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tradebot.core.bot import PositionView
from tradebot.core.exceptions import StrategyError
from tradebot.core.models import Candle, Decision, StrategyAnalysis


P = TypeVar('P', bound=BaseModel)
S = TypeVar('S', bound='StrategyBase')


class StrategyParams(BaseModel):
    """Parameters shared by every strategy.

    Fields accept both snake_case and the PascalCase keys stored with bots.
    """

    model_config = ConfigDict(populate_by_name=True, extra='forbid', frozen=True)

    stoploss_threshold: float = Field(default=0.0, ge=0, alias='StoplossThreshold')


def parse_params(model: Type[P], values: Mapping[str, Any]) -> P:
    """Validate strategy parameters, raising StrategyError on failure."""
    try:
        return model.model_validate(dict(values))
    except ValidationError as e:
        raise StrategyError(f"invalid {model.__name__}: {e}") from e


def possible_profit(entry_price: float, current_price: float) -> float:
    """Unrealized profit percentage of a long position; 0 when flat."""
    if entry_price == 0:
        return 0.0
    return ((current_price - entry_price) / entry_price) * 100


class StrategyBase(ABC):
    """Base class for trading strategies.

    ``decide`` reads the position through a :class:`PositionView` and never
    raises: missing data degrades to a HOLD with a reason.
    """

    name: str = "Strategy"
    params_model: Type[StrategyParams] = StrategyParams

    def __init__(self, params: StrategyParams):
        self.params = params
        self.stoploss_threshold = params.stoploss_threshold

    @classmethod
    def from_params(cls: Type[S], values: Mapping[str, Any]) -> S:
        """Build the strategy from a raw parameter mapping."""
        return cls(**parse_params(cls.params_model, values).model_dump())

    @abstractmethod
    def decide(self, window: Sequence[Candle], position: PositionView) -> StrategyAnalysis:
        """Evaluate the window.

        Args:
            window: Candles in ascending close-time order
            position: Read-only position state

        Returns:
            Decision with diagnostics
        """
        pass

    @abstractmethod
    def get_min_periods(self) -> int:
        """Minimum number of candles needed for a non-trivial decision."""
        pass

    def get_params(self) -> Dict[str, Any]:
        """Parameters keyed the way they are persisted with a bot."""
        return self.params.model_dump(by_alias=True)

    def stoploss_triggered(self, position: PositionView, profit: float) -> bool:
        """Stoploss overrides every other rule once the loss reaches the threshold."""
        return (
            position.is_positioned
            and self.stoploss_threshold > 0
            and profit <= -self.stoploss_threshold
        )

    @staticmethod
    def hold(reason: str, **data: Any) -> StrategyAnalysis:
        data['reason'] = reason
        return StrategyAnalysis(Decision.HOLD, data)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.get_params()})"
