"""Strategy construction by name."""

from enum import Enum
from typing import Any, Mapping, Optional

from tradebot.core.exceptions import StrategyError
from tradebot.core.registry import strategy_registry
from tradebot.strategies.base import StrategyBase

# Importing the modules registers the strategies
import tradebot.strategies.breakout  # noqa: F401
import tradebot.strategies.moving_average  # noqa: F401
import tradebot.strategies.rsi  # noqa: F401


class StrategyName(str, Enum):
    """Every strategy the bot can run."""
    MOVING_AVERAGE = "MovingAverage"
    RSI = "RSI"
    BREAKOUT = "Breakout"


def build_strategy(name: str, params: Optional[Mapping[str, Any]] = None) -> StrategyBase:
    """Create a strategy from its name and raw parameters.

    Raises:
        StrategyError: unknown name or invalid parameters
    """
    try:
        key = StrategyName(name)
    except ValueError:
        raise StrategyError(
            f"unsupported strategy: {name} "
            f"(available: {', '.join(s.value for s in StrategyName)})"
        ) from None
    return strategy_registry.get(key.value).from_params(params or {})
